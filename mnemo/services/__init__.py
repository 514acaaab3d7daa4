"""Business logic services."""

from .llm_service import LLMService
from .memory_service import MemoryService
from .chat_service import ChatService
from .account_service import AccountService

__all__ = ["LLMService", "MemoryService", "ChatService", "AccountService"]
