"""Memory processing components."""

from .embedder import EmbeddingService
from .retriever import MemoryRetriever, ScoredMemory
from .deduplicator import MemoryDeduplicator
from .parser import MemoryAnnotation, parse_memories, strip_annotations

__all__ = [
    "EmbeddingService",
    "MemoryRetriever",
    "ScoredMemory",
    "MemoryDeduplicator",
    "MemoryAnnotation",
    "parse_memories",
    "strip_annotations"
]
