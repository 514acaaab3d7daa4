"""
Memory management service.

Creates, lists, updates and deletes a user's memories. Every lookup is
scoped by both memory id and owner. Embeddings are written best effort in a
separate commit after the row itself is stored.
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.memory.embedder import EmbeddingService
from mnemo.memory.retriever import MemoryRetriever
from mnemo.models.memory import Memory
from mnemo.models.schemas import MemoryCreate, MemoryUpdate

logger = logging.getLogger(__name__)


class MemoryService:
    """
    High-level memory management service.

    Coordinates storage and embedding for memories created by hand or
    extracted from chat.
    """

    def __init__(self, embedding_service: EmbeddingService, retriever: MemoryRetriever):
        """
        Initialize memory service.

        Args:
            embedding_service: Service for generating embeddings
            retriever: Retriever used for listing
        """
        self.embedding_service = embedding_service
        self.retriever = retriever

    # ================================
    # Storage primitives
    # ================================

    def insert_memory(
        self,
        db: Session,
        user_id: int,
        content: Optional[str],
        category: Optional[str] = None,
        tags: Optional[List[str]] = None
    ) -> Memory:
        """
        Insert and commit a memory without an embedding.

        Args:
            db: Database session
            user_id: Owner
            content: Memory text (None is stored as "")
            category: Category (None is stored as "general")
            tags: Tags, truncated to three

        Returns:
            Memory: The stored row
        """
        memory = Memory(
            user_id=user_id,
            content=content or "",
            category=category or RAG_CONFIG["DEFAULT_CATEGORY"],
        )
        memory.set_tags(tags)
        db.add(memory)
        db.commit()
        db.refresh(memory)

        logger.info(f"Stored memory {memory.id} for user {user_id}")
        return memory

    def attach_embedding(self, db: Session, memory: Memory, vector: Optional[List[float]]) -> bool:
        """
        Write an embedding onto a stored memory.

        Failures are logged and rolled back; the memory stays without an
        embedding and is simply invisible to vector search.

        Returns:
            bool: True if the embedding was committed
        """
        if not vector:
            return False

        try:
            memory.embedding = vector
            db.commit()
            logger.debug(f"Embedding saved for memory {memory.id}")
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save embedding for memory {memory.id}: {e}")
            return False

    async def embed_memory(self, db: Session, memory: Memory) -> bool:
        """Compute and attach an embedding for a memory's current content."""
        vector = await self.embedding_service.embed(memory.content)
        return self.attach_embedding(db, memory, vector)

    # ================================
    # CRUD
    # ================================

    def get_memory(self, db: Session, user_id: int, memory_id: int) -> Optional[Memory]:
        """Fetch a memory only if it belongs to the user."""
        return (
            db.query(Memory)
            .filter(Memory.id == memory_id, Memory.user_id == user_id)
            .first()
        )

    def list_memories(self, db: Session, user_id: int) -> Tuple[Dict[str, List[Memory]], List[Memory]]:
        """
        List a user's memories.

        Returns:
            Tuple of (memories grouped by category, the groups flattened in
            category order). Newest first within each category.
        """
        grouped = self.retriever.list_grouped(db, user_id)
        items = [memory for memories in grouped.values() for memory in memories]
        return grouped, items

    async def create_memory(self, db: Session, user_id: int, data: MemoryCreate) -> Memory:
        """
        Create a memory and embed it best effort.

        Args:
            db: Database session
            user_id: Owner
            data: Content, category and tags

        Returns:
            Memory: The stored memory
        """
        memory = self.insert_memory(db, user_id, data.content, data.category, data.tags)
        await self.embed_memory(db, memory)
        return memory

    async def update_memory(
        self,
        db: Session,
        user_id: int,
        memory_id: int,
        data: MemoryUpdate
    ) -> Optional[Memory]:
        """
        Replace a memory's content, category and tags.

        A content change clears the stored embedding and recomputes it.

        Returns:
            Optional[Memory]: Updated memory, or None if the user has no such memory
        """
        memory = self.get_memory(db, user_id, memory_id)
        if memory is None:
            return None

        content = data.content or ""
        content_changed = content != memory.content

        memory.content = content
        memory.category = data.category or RAG_CONFIG["DEFAULT_CATEGORY"]
        memory.set_tags(data.tags)
        if content_changed:
            memory.embedding = None
        db.commit()
        db.refresh(memory)

        logger.info(f"Updated memory {memory_id} for user {user_id}")

        if content_changed:
            await self.embed_memory(db, memory)
        return memory

    def delete_memory(self, db: Session, user_id: int, memory_id: int) -> bool:
        """
        Delete a memory owned by the user.

        Returns:
            bool: True if a row was deleted
        """
        deleted = (
            db.query(Memory)
            .filter(Memory.id == memory_id, Memory.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.commit()

        if deleted:
            logger.info(f"Deleted memory {memory_id} for user {user_id}")
        return bool(deleted)
