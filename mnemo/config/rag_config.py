"""
Retrieval and memory-protocol constants.

Tunable retrieval thresholds (relevance floor, duplicate distance, context
size, fallback trigger) live in Settings; the values here are fixed parts of
the memory format and request limits.
"""

from typing import Any, Dict


RAG_CONFIG: Dict[str, Any] = {
    # Memory format
    "MAX_TAGS": 3,
    "DEFAULT_CATEGORY": "general",
    "EXTRACTED_CATEGORY": "personal",

    # Annotations emitted by the model shorter than this are noise
    "MIN_EXTRACTED_CONTENT_LENGTH": 10,

    # Nearest neighbours inspected by the duplicate check
    "DUPLICATE_CHECK_LIMIT": 1,

    # Chat request limits
    "MAX_MESSAGE_LENGTH": 5000,
    "MAX_HISTORY_ENTRIES": 50,
    "MAX_HISTORY_CONTENT_LENGTH": 10000,

    # Memory CRUD limits
    "MAX_MEMORY_CONTENT_LENGTH": 5000,
    "MAX_CATEGORY_LENGTH": 100,
}
