"""Retrieval and memory-format constants."""

from .rag_config import RAG_CONFIG

__all__ = ["RAG_CONFIG"]
