"""
Chat orchestration.

One chat turn: embed the message, gather memory context, call the model,
persist any memories it annotated, and strip the annotations from the
reply. Only the model call can fail the turn; everything else degrades.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.memory.deduplicator import MemoryDeduplicator
from mnemo.memory.embedder import EmbeddingService
from mnemo.memory.parser import MemoryAnnotation, parse_memories, strip_annotations
from mnemo.memory.prompts import build_prompt_from_memories
from mnemo.memory.retriever import MemoryRetriever
from mnemo.models.memory import User
from mnemo.services.llm_service import LLMService
from mnemo.services.memory_service import MemoryService

logger = logging.getLogger(__name__)


@dataclass
class ChatResult:
    """Outcome of a chat turn."""
    output: str
    saved_memory_ids: List[int] = field(default_factory=list)
    context_size: int = 0


class ChatService:
    """
    Memory-aware chat service.

    Combines retrieval, the LLM client and memory persistence into a single
    sequential pass per message.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        retriever: MemoryRetriever,
        deduplicator: MemoryDeduplicator,
        llm_service: LLMService,
        memory_service: MemoryService
    ):
        self.embedding_service = embedding_service
        self.retriever = retriever
        self.deduplicator = deduplicator
        self.llm_service = llm_service
        self.memory_service = memory_service

    async def save_extracted_memories(
        self,
        db: Session,
        user: User,
        annotations: List[MemoryAnnotation]
    ) -> List[int]:
        """
        Persist memories the model annotated in its reply.

        Annotations are handled in order. Short content is ignored and
        near-duplicates of existing memories are skipped. A failure on one
        memory is logged and does not affect the others.

        Args:
            db: Database session
            user: Owner of the new memories
            annotations: Parsed annotations

        Returns:
            List[int]: Ids of the memories stored
        """
        saved: List[int] = []

        for annotation in annotations:
            content = annotation.content
            if len(content) < RAG_CONFIG["MIN_EXTRACTED_CONTENT_LENGTH"]:
                logger.debug(f"Skipping short memory annotation: {content!r}")
                continue

            vector = await self.embedding_service.embed(content)
            if self.deduplicator.is_duplicate(db, user.id, vector):
                logger.debug(f"Skipping duplicate memory: {content!r}")
                continue

            try:
                memory = self.memory_service.insert_memory(
                    db,
                    user.id,
                    content,
                    category=RAG_CONFIG["EXTRACTED_CATEGORY"],
                    tags=annotation.tags
                )
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Failed to save memory for user {user.id}: {e}")
                continue

            self.memory_service.attach_embedding(db, memory, vector)
            saved.append(memory.id)

        if saved:
            logger.info(f"Saved {len(saved)} memories from chat for user {user.id}")
        return saved

    async def chat(self, db: Session, user: User, message: str) -> ChatResult:
        """
        Run one chat turn.

        Args:
            db: Database session
            user: Authenticated user
            message: User message

        Returns:
            ChatResult: Reply without annotations, ids of saved memories and
            the number of context memories used

        Raises:
            LLMError: If the model is unconfigured or the request fails
        """
        start_time = time.time()

        vector = await self.embedding_service.embed(message)
        context = self.retriever.retrieve_context(db, user.id, vector)
        prompt = build_prompt_from_memories(context, message)

        raw_output = await self.llm_service.generate(prompt, user.name)

        annotations = parse_memories(raw_output)
        saved_ids = await self.save_extracted_memories(db, user, annotations)
        output = strip_annotations(raw_output)

        duration = time.time() - start_time
        logger.info(
            f"Chat turn for user {user.id}: {len(context)} context memories, "
            f"{len(saved_ids)} saved, {duration:.2f}s"
        )
        return ChatResult(output=output, saved_memory_ids=saved_ids, context_size=len(context))
