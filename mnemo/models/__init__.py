"""Database models and API schemas."""

from .memory import ActivityLog, ActivityType, Memory, User
from .schemas import (
    ChatRequest,
    ChatResponse,
    MemoryCreate,
    MemoryResponse,
    MemoryUpdate,
    HealthResponse
)

__all__ = [
    # SQLAlchemy models
    "User",
    "Memory",
    "ActivityLog",
    "ActivityType",
    # Pydantic schemas
    "ChatRequest",
    "ChatResponse",
    "MemoryCreate",
    "MemoryResponse",
    "MemoryUpdate",
    "HealthResponse"
]
