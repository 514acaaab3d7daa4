"""
Memory retrieval using pgvector similarity search.

Finds a user's nearest memories by cosine distance, applies the relevance
floor, and falls back to the user's full memory list when vector search
comes back sparse.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.core.config import Settings, settings as default_settings
from mnemo.models.memory import Memory

logger = logging.getLogger(__name__)


@dataclass
class ScoredMemory:
    """A memory paired with its cosine similarity to the query vector."""
    memory: Memory
    similarity: float

    @property
    def distance(self) -> float:
        return 1.0 - self.similarity


def group_by_category(memories: Sequence[Memory]) -> Dict[str, List[Memory]]:
    """
    Group memories by category, keeping first-seen category order.

    Args:
        memories: Memories in display order

    Returns:
        Dict[str, List[Memory]]: Category to memories
    """
    grouped: Dict[str, List[Memory]] = OrderedDict()
    for memory in memories:
        category = memory.category or RAG_CONFIG["DEFAULT_CATEGORY"]
        grouped.setdefault(category, []).append(memory)
    return grouped


class MemoryRetriever:
    """
    Retrieves memories for chat context.

    Every query is scoped to a single user; the user filter is compiled into
    the SQL rather than applied to results afterwards.
    """

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    def build_nearest_query(self, user_id: int, vector: List[float], limit: int) -> Select:
        """
        Build the nearest-neighbour query for a user.

        Args:
            user_id: Owner of the memories
            vector: Query embedding
            limit: Maximum rows

        Returns:
            Select: Rows of (Memory, similarity) ordered by cosine distance
        """
        distance = Memory.embedding.cosine_distance(vector)
        return (
            select(Memory, (1 - distance).label("similarity"))
            .where(Memory.user_id == user_id)
            .where(Memory.embedding.isnot(None))
            .order_by(distance)
            .limit(limit)
        )

    def _query_nearest(
        self,
        db: Session,
        user_id: int,
        vector: List[float],
        limit: int
    ) -> List[Tuple[Memory, float]]:
        rows = db.execute(self.build_nearest_query(user_id, vector, limit)).all()
        return [(row[0], float(row[1])) for row in rows]

    def find_nearest(
        self,
        db: Session,
        user_id: int,
        vector: Optional[List[float]],
        limit: int,
        apply_floor: bool = True
    ) -> List[ScoredMemory]:
        """
        Find the user's memories nearest to a vector.

        Args:
            db: Database session
            user_id: Owner of the memories
            vector: Query embedding (empty or None yields no results)
            limit: Maximum number of hits
            apply_floor: Drop hits at or below the relevance floor

        Returns:
            List[ScoredMemory]: Hits ordered by similarity, best first. An
            empty list when the search fails.
        """
        if not vector:
            return []

        try:
            rows = self._query_nearest(db, user_id, vector, limit)
        except SQLAlchemyError as e:
            logger.warning(f"Vector search failed for user {user_id}: {e}")
            db.rollback()
            return []

        hits = [ScoredMemory(memory=memory, similarity=similarity) for memory, similarity in rows]
        if apply_floor:
            hits = [hit for hit in hits if hit.similarity > self.config.relevance_floor]

        logger.debug(f"Vector search for user {user_id} returned {len(hits)} hits")
        return hits

    def list_memories(self, db: Session, user_id: int) -> List[Memory]:
        """All of a user's memories, newest first."""
        return (
            db.query(Memory)
            .filter(Memory.user_id == user_id)
            .order_by(Memory.created_at.desc(), Memory.id.desc())
            .all()
        )

    def list_grouped(self, db: Session, user_id: int) -> Dict[str, List[Memory]]:
        """All of a user's memories grouped by category."""
        return group_by_category(self.list_memories(db, user_id))

    def retrieve_context(
        self,
        db: Session,
        user_id: int,
        vector: Optional[List[float]]
    ) -> List[Memory]:
        """
        Retrieve the memories to show the model for one chat turn.

        Uses vector search first. When it yields fewer than the configured
        minimum, the user's complete memory list (grouped by category, then
        flattened) replaces it, provided that list is not empty.

        Args:
            db: Database session
            user_id: Owner of the memories
            vector: Embedding of the user's message, if available

        Returns:
            List[Memory]: Context memories in retrieval order
        """
        hits = self.find_nearest(db, user_id, vector, self.config.chat_context_limit)
        memories = [hit.memory for hit in hits]

        if len(memories) >= self.config.fallback_min_results:
            return memories

        try:
            grouped = self.list_grouped(db, user_id)
        except SQLAlchemyError as e:
            logger.warning(f"Fallback memory listing failed for user {user_id}: {e}")
            db.rollback()
            return memories

        flattened = [memory for group in grouped.values() for memory in group]
        if flattened:
            logger.debug(
                f"Sparse vector results ({len(memories)}); "
                f"using all {len(flattened)} memories for user {user_id}"
            )
            return flattened

        return memories
