"""mdrag - retrieval-augmented answers over local markdown documents."""

__version__ = "0.1.0"
