"""Chat-completion providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from openai import OpenAI, OpenAIError

from mdrag.embedding.encoder import ProviderName, openai_available
from mdrag.errors import ProviderError

DEFAULT_CHAT_MODEL = "gpt-3.5-turbo"
ROLES = ("system", "user", "assistant")

Role = Literal["system", "user", "assistant"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChatMessage:
    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid chat role: {self.role!r}")

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatModel(Protocol):
    def complete(self, messages: Sequence[ChatMessage], *, temperature: float = 0.0) -> str: ...


class OpenAIChat:
    """Chat completions through the OpenAI API."""

    name = "openai"

    def __init__(self, client: OpenAI, *, model: str = DEFAULT_CHAT_MODEL) -> None:
        self.client = client
        self.model = model

    def complete(self, messages: Sequence[ChatMessage], *, temperature: float = 0.0) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[message.to_dict() for message in messages],
                temperature=temperature,
            )
        except OpenAIError as exc:
            raise ProviderError(self.name, str(exc)) from exc

        if not response.choices:
            raise ProviderError(self.name, "response contained no choices")
        content = response.choices[0].message.content
        LOGGER.debug("Chat completion with %s returned %d chars", self.model, len(content or ""))
        return content or ""


class MockChat:
    """Deterministic offline stand-in that echoes message roles and lengths."""

    name = "mock"

    def complete(self, messages: Sequence[ChatMessage], *, temperature: float = 0.0) -> str:
        joined = "|".join(f"{message.role}-{len(message.content)}" for message in messages)
        return f"MOCK_RESPONSE[{joined}]"


def build_chat(
    provider: ProviderName = "auto",
    *,
    model_name: str | None = None,
    client: OpenAI | None = None,
) -> ChatModel:
    """Create the chat model selected by ``provider``.

    Only OpenAI serves real completions; every other provider falls back to
    :class:`MockChat`.
    """
    if provider == "auto":
        provider = "openai" if client is not None or openai_available() else "hash"
    if provider == "openai":
        return OpenAIChat(client or OpenAI(), model=model_name or DEFAULT_CHAT_MODEL)
    if provider in ("local", "hash"):
        return MockChat()
    raise ValueError(f"Unknown chat provider: {provider}")
