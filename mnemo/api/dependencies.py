"""
FastAPI dependencies for dependency injection.

Provides reusable dependencies for services and the authenticated user.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from mnemo.core.config import settings
from mnemo.core.database import get_db
from mnemo.core.security import decode_session_token
from mnemo.memory.deduplicator import MemoryDeduplicator
from mnemo.memory.embedder import EmbeddingService
from mnemo.memory.retriever import MemoryRetriever
from mnemo.models.memory import User
from mnemo.services.account_service import AccountService
from mnemo.services.chat_service import ChatService
from mnemo.services.llm_service import LLMService
from mnemo.services.memory_service import MemoryService
from mnemo.utils.sms import SMSService

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated"

# Global service instances (singleton pattern)
_embedding_service: Optional[EmbeddingService] = None
_retriever: Optional[MemoryRetriever] = None
_llm_service: Optional[LLMService] = None
_memory_service: Optional[MemoryService] = None
_chat_service: Optional[ChatService] = None
_account_service: Optional[AccountService] = None


def get_embedding_service() -> EmbeddingService:
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service


def get_retriever() -> MemoryRetriever:
    global _retriever
    if _retriever is None:
        _retriever = MemoryRetriever()
    return _retriever


def get_llm_service() -> LLMService:
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service


def get_memory_service() -> MemoryService:
    """
    Get memory service instance.

    Returns:
        MemoryService: Singleton memory service instance

    Example:
        >>> @router.get("/memories")
        >>> def list_memories(service: MemoryService = Depends(get_memory_service)):
        ...     return service.list_memories(db, user.id)
    """
    global _memory_service
    if _memory_service is None:
        logger.info("Initializing memory service")
        _memory_service = MemoryService(get_embedding_service(), get_retriever())
    return _memory_service


def get_chat_service() -> ChatService:
    """Get chat service instance wired to the shared components."""
    global _chat_service
    if _chat_service is None:
        logger.info("Initializing chat service")
        retriever = get_retriever()
        _chat_service = ChatService(
            embedding_service=get_embedding_service(),
            retriever=retriever,
            deduplicator=MemoryDeduplicator(retriever),
            llm_service=get_llm_service(),
            memory_service=get_memory_service(),
        )
    return _chat_service


def get_account_service() -> AccountService:
    global _account_service
    if _account_service is None:
        _account_service = AccountService(SMSService())
    return _account_service


def get_client_ip(request: Request) -> Optional[str]:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    accounts: AccountService = Depends(get_account_service)
) -> User:
    """
    Resolve the signed-in user from the session cookie.

    A cookie that fails verification is flagged so the response clears it.

    Raises:
        HTTPException: 401 when the session is missing, invalid or expired,
        or the user no longer exists
    """
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)

    result = decode_session_token(token)
    if not result.is_valid:
        request.state.clear_session = True
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)

    user = accounts.get_active_user(db, result.user_id)
    if user is None:
        request.state.clear_session = True
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=NOT_AUTHENTICATED)

    return user
