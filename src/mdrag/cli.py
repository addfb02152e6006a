"""Command line interface for mdrag."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from mdrag.config import PROVIDERS, AppConfig
from mdrag.embedding.encoder import Embedder, build_embedder, openai_available
from mdrag.errors import MdragError
from mdrag.index.search import Searcher
from mdrag.index.storage import EmbeddingCache
from mdrag.llm.chat import build_chat
from mdrag.rag.orchestrator import RetrievalOrchestrator
from mdrag.utils.files import MARKDOWN_SUFFIX
from mdrag.utils.text import wrap_text

console = Console()
app = typer.Typer(help="mdrag - ask questions about local markdown documents")

EXIT_WORDS = {"exit", "quit"}


@dataclass(slots=True)
class Services:
    embedder: Embedder
    cache: EmbeddingCache
    searcher: Searcher
    orchestrator: RetrievalOrchestrator


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.ensure_object(dict).get("config") or AppConfig.from_env()


def _build_services(config: AppConfig) -> Services:
    if config.provider == "openai" and not openai_available():
        raise typer.BadParameter("OPENAI_API_KEY is not set", param_hint="--provider")

    embedder = build_embedder(
        config.provider,
        model_name=config.embedding_model,
        dimension=config.embedding_dimension,
    )
    chat = build_chat(config.provider, model_name=config.chat_model)
    cache = EmbeddingCache(
        embedder,
        config.resolve_docs_dir(Path.cwd()),
        config.resolve_cache_path(Path.cwd()),
        chunk_size=config.chunk_size,
        batch_size=config.batch_size,
    )
    searcher = Searcher(embedder, cache)
    orchestrator = RetrievalOrchestrator(
        searcher,
        chat,
        per_query_k=config.per_query_k,
        max_queries=config.max_queries,
    )
    return Services(embedder=embedder, cache=cache, searcher=searcher, orchestrator=orchestrator)


def _fail(exc: MdragError) -> typer.Exit:
    console.print(str(exc), style="red", markup=False, soft_wrap=True)
    return typer.Exit(code=1)


def _print_stats(cache: EmbeddingCache) -> None:
    stats = cache.stats()
    console.print(f"Chunks: {stats.chunk_count}, embedding dimension: {stats.embedding_dim}")


def _interactive(services: Services) -> None:
    console.print('Simple RAG CLI. Type "exit" to quit.')
    while True:
        try:
            line = console.input("\n> ")
        except (EOFError, KeyboardInterrupt):
            break
        question = line.strip()
        if not question or question.lower() in EXIT_WORDS:
            break
        answer = services.orchestrator.answer(question)
        console.print("\n" + wrap_text(answer, 80), markup=False, highlight=False)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    docs_dir: Path = typer.Option(None, "--docs-dir", help="Directory with markdown documents"),
    cache: Path = typer.Option(None, "--cache", help="Embeddings cache file"),
    provider: str = typer.Option(None, "--provider", help=f"One of: {', '.join(PROVIDERS)}"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Without a command, start the interactive question loop."""
    _setup_logging(verbose)
    try:
        config = AppConfig.from_env(docs_dir=docs_dir, cache_path=cache, provider=provider)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    ctx.ensure_object(dict)["config"] = config

    if ctx.invoked_subcommand is None:
        services = _build_services(config)
        try:
            services.cache.initialize()
            _interactive(services)
        except MdragError as exc:
            raise _fail(exc) from exc


@app.command()
def ask(
    ctx: typer.Context,
    question: Optional[str] = typer.Option(None, "--question", "-q", help="Answer a single question and exit"),
) -> None:
    """Ask questions about the documents."""
    services = _build_services(_config(ctx))
    try:
        services.cache.initialize()
        if question is None:
            _interactive(services)
        else:
            console.print(wrap_text(services.orchestrator.answer(question), 80), markup=False, highlight=False)
    except MdragError as exc:
        raise _fail(exc) from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--question") from exc


@app.command()
def train(ctx: typer.Context) -> None:
    """Rebuild the embeddings cache from the document directory."""
    config = _config(ctx)
    services = _build_services(config)
    console.print(f"Embedding documents from [bold]{services.cache.docs_dir}[/bold]...")
    try:
        services.cache.rebuild()
    except MdragError as exc:
        raise _fail(exc) from exc
    _print_stats(services.cache)
    console.print(f"Cache written to [bold]{services.cache.cache_path}[/bold]")


@app.command()
def add(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Markdown file to add"),
) -> None:
    """Copy a markdown file into the document directory and rebuild."""
    if file.suffix.lower() != MARKDOWN_SUFFIX:
        raise typer.BadParameter(f"Only {MARKDOWN_SUFFIX} files can be added", param_hint="FILE")

    services = _build_services(_config(ctx))
    target = services.cache.docs_dir / file.name
    services.cache.docs_dir.mkdir(parents=True, exist_ok=True)
    if file.resolve() == target.resolve():
        console.print(f"[bold]{file.name}[/bold] is already in {services.cache.docs_dir}")
    else:
        shutil.copy2(file, target)
        console.print(f"Added [bold]{file.name}[/bold] to {services.cache.docs_dir}")

    try:
        services.cache.rebuild()
    except MdragError as exc:
        raise _fail(exc) from exc
    _print_stats(services.cache)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Query text"),
    top_k: Optional[int] = typer.Option(None, "--top-k", min=1, help="Number of results to display"),
) -> None:
    """Show the chunks most similar to a query."""
    config = _config(ctx)
    services = _build_services(config)
    try:
        services.cache.initialize()
        results = services.searcher.search(query, top_k=top_k or config.top_k)
    except MdragError as exc:
        raise _fail(exc) from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="QUERY") from exc

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Source")
    table.add_column("Chunk")
    table.add_column("Snippet")

    for result in results:
        snippet = result.chunk.content.replace("\n", " ")
        table.add_row(f"{result.score:.4f}", result.chunk.source, str(result.index), snippet[:180])

    console.print(table)


@app.command()
def stats(ctx: typer.Context) -> None:
    """Print statistics about the embeddings cache."""
    services = _build_services(_config(ctx))
    if not services.cache.cache_path.exists():
        console.print("[yellow]No cache found. Run `mdrag train` first.[/yellow]")
        return
    try:
        services.cache.load()
    except MdragError as exc:
        raise _fail(exc) from exc
    _print_stats(services.cache)
