"""
SQLAlchemy models for users, memories and the activity log.

Defines database tables with relationships, indexes and the pgvector
embedding column used for similarity search.
"""

import json
import logging
from enum import Enum
from typing import List, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.core.config import settings
from mnemo.core.database import Base
from mnemo.utils.dates import utcnow

logger = logging.getLogger(__name__)


class ActivityType(str, Enum):
    """Account events recorded in the activity log."""
    SIGN_UP = "SIGN_UP"
    SIGN_IN = "SIGN_IN"
    SIGN_OUT = "SIGN_OUT"
    UPDATE_PASSWORD = "UPDATE_PASSWORD"
    DELETE_ACCOUNT = "DELETE_ACCOUNT"
    UPDATE_ACCOUNT = "UPDATE_ACCOUNT"
    UPDATE_MOBILE = "UPDATE_MOBILE"
    VERIFY_MOBILE = "VERIFY_MOBILE"


class User(Base):
    """
    User model for authentication and mobile verification.

    Attributes:
        id: Primary key
        email: Unique e-mail address (rewritten on soft delete)
        password_hash: bcrypt hash
        deleted_at: Soft-delete timestamp
        mobile_*: Mobile number and verification state
        memories: Related memories
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(Text, nullable=False)
    role = Column(String(20), default="member", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True)

    mobile_country_code = Column(String(8), nullable=True)
    mobile_number = Column(String(32), nullable=True)
    mobile_verification_token = Column(String(10), nullable=True)
    mobile_verification_expires = Column(DateTime, nullable=True)
    mobile_verified = Column(DateTime, nullable=True)

    # Soft delete keeps memories in place, so no delete cascade here
    memories = relationship("Memory", back_populates="user")
    activity_logs = relationship("ActivityLog", back_populates="user")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class Memory(Base):
    """
    Memory model for short user facts.

    Attributes:
        id: Primary key
        user_id: Owner
        content: Memory text (never null, may be empty)
        category: Category label
        tags: JSON-encoded list of at most three tags
        embedding: Vector written after a successful embedding call
        created_at: Creation timestamp
    """

    __tablename__ = "memories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, default=RAG_CONFIG["DEFAULT_CATEGORY"])
    tags = Column(Text, nullable=False, default="[]")
    embedding = Column(Vector(settings.embedding_dimension), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="memories")

    __table_args__ = (
        Index("idx_memory_user_created", "user_id", "created_at"),
        Index(
            "idx_memory_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    def get_tags(self) -> List[str]:
        """
        Get tags as a list.

        Returns:
            List[str]: Stored tags, or an empty list if the column is corrupt
        """
        if not self.tags:
            return []
        try:
            value = json.loads(self.tags)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to parse tags for memory {self.id}: {e}")
            return []
        if not isinstance(value, list):
            return []
        return [str(tag) for tag in value]

    def set_tags(self, tags: Optional[List[str]]) -> None:
        """
        Store tags, keeping only the first three.

        Args:
            tags: Tag list to store
        """
        self.tags = json.dumps(list(tags or [])[:RAG_CONFIG["MAX_TAGS"]])

    def __repr__(self) -> str:
        return f"<Memory(id={self.id}, user_id={self.user_id}, category='{self.category}')>"


class ActivityLog(Base):
    """Account activity entry."""

    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    ip_address = Column(String(45), nullable=True)

    user = relationship("User", back_populates="activity_logs")

    def __repr__(self) -> str:
        return f"<ActivityLog(user_id={self.user_id}, action='{self.action}')>"
