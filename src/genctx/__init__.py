"""genctx: pack a project directory into a single context document for LLMs."""

__version__ = "1.2.0"
