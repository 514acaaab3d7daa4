"""
Duplicate detection for memories extracted from chat.

A new memory is a duplicate when the user's single nearest stored memory
lies within the configured cosine distance.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.core.config import Settings, settings as default_settings
from mnemo.memory.retriever import MemoryRetriever

logger = logging.getLogger(__name__)


class MemoryDeduplicator:
    """
    Detects near-identical memories before they are stored.

    Without an embedding nothing can be compared, so the memory is treated
    as new. A failed lookup also counts as "not a duplicate".
    """

    def __init__(self, retriever: MemoryRetriever, config: Optional[Settings] = None):
        """
        Initialize deduplicator.

        Args:
            retriever: Retriever used for the nearest-neighbour lookup
            config: Settings holding the distance threshold
        """
        self.retriever = retriever
        self.config = config or default_settings

    def is_duplicate(self, db: Session, user_id: int, vector: Optional[List[float]]) -> bool:
        """
        Check whether a vector is too close to an existing memory.

        Args:
            db: Database session
            user_id: Owner of the memories
            vector: Embedding of the candidate memory

        Returns:
            bool: True if the nearest memory is within the threshold
        """
        if not vector:
            return False

        hits = self.retriever.find_nearest(
            db,
            user_id,
            vector,
            limit=RAG_CONFIG["DUPLICATE_CHECK_LIMIT"],
            apply_floor=False
        )
        if not hits:
            return False

        nearest = hits[0]
        if nearest.distance < self.config.duplicate_distance_threshold:
            logger.info(
                f"Duplicate memory detected for user {user_id} "
                f"(memory {nearest.memory.id}, distance {nearest.distance:.3f})"
            )
            return True

        return False
