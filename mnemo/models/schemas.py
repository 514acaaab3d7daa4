"""
Pydantic schemas for API request/response validation.

Defines data models for API endpoints with proper validation,
documentation, and examples. Validator messages are returned to clients
verbatim, so they are written for end users.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from mnemo.config.rag_config import RAG_CONFIG
from mnemo.models.memory import ActivityLog, Memory, User

PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _check_password_length(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value) > 100:
        raise ValueError("Password must be at most 100 characters")
    return value


def _check_password_strength(value: str) -> str:
    _check_password_length(value)
    if not PASSWORD_RULE.match(value):
        raise ValueError(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )
    return value


# ================================
# Chat
# ================================

class ChatMessage(BaseModel):
    """One prior turn of the conversation."""
    role: str = Field(..., description="Speaker role (user or assistant)")
    content: str = Field(..., description="Turn text")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        if len(v) > RAG_CONFIG["MAX_HISTORY_CONTENT_LENGTH"]:
            raise ValueError("Conversation message too long")
        return v


class ChatRequest(BaseModel):
    """
    Chat request.

    The conversation history is accepted and validated for client
    compatibility; only the current message is sent to the model.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "message": "I like pasta",
                "conversationHistory": [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello!"}
                ]
            }
        }
    )

    message: str = Field(..., description="User message (1-5000 characters)")
    conversation_history: Optional[List[ChatMessage]] = Field(
        default=None,
        alias="conversationHistory",
        description="Previous turns, at most 50"
    )

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v:
            raise ValueError("Message is required")
        if len(v) > RAG_CONFIG["MAX_MESSAGE_LENGTH"]:
            raise ValueError("Message too long")
        return v

    @field_validator("conversation_history")
    @classmethod
    def validate_history(cls, v: Optional[List[ChatMessage]]) -> Optional[List[ChatMessage]]:
        if v is not None and len(v) > RAG_CONFIG["MAX_HISTORY_ENTRIES"]:
            raise ValueError("Conversation history too long")
        return v


class ChatResponse(BaseModel):
    """Assistant reply with memory annotations removed."""
    output: str = Field(..., description="Reply text")


# ================================
# Memories
# ================================

class MemoryCreate(BaseModel):
    """
    Schema for creating a memory by hand.

    Missing content is stored as an empty string and a missing category as
    "general"; only the first three tags are kept.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "Allergic to peanuts",
                "category": "health",
                "tags": ["allergy", "food"]
            }
        }
    )

    content: Optional[str] = Field(None, description="Memory content")
    category: Optional[str] = Field(None, description="Category label")
    tags: Optional[List[str]] = Field(None, description="Tags (first three kept)")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > RAG_CONFIG["MAX_MEMORY_CONTENT_LENGTH"]:
            raise ValueError("Content too long")
        return v

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v) > RAG_CONFIG["MAX_CATEGORY_LENGTH"]:
            raise ValueError("Category too long")
        return v


class MemoryUpdate(MemoryCreate):
    """Schema for replacing a memory's content, category and tags."""
    pass


class MemoryResponse(BaseModel):
    """Memory as returned to clients. Embeddings are never serialised."""
    id: int = Field(..., description="Memory identifier")
    user_id: int = Field(..., description="Owner identifier")
    content: str = Field(..., description="Memory content")
    category: str = Field(..., description="Category label")
    tags: List[str] = Field(default_factory=list, description="Tags")
    created_at: datetime = Field(..., description="Creation timestamp")

    @classmethod
    def from_memory(cls, memory: Memory) -> "MemoryResponse":
        return cls(
            id=memory.id,
            user_id=memory.user_id,
            content=memory.content or "",
            category=memory.category or RAG_CONFIG["DEFAULT_CATEGORY"],
            tags=memory.get_tags(),
            created_at=memory.created_at,
        )


class MemoryEnvelope(BaseModel):
    memory: MemoryResponse


class MemoryListResponse(BaseModel):
    """All of a user's memories, grouped by category and as a flat list."""
    grouped: Dict[str, List[MemoryResponse]] = Field(default_factory=dict)
    items: List[MemoryResponse] = Field(default_factory=list)


class OkResponse(BaseModel):
    ok: bool = True


# ================================
# Authentication and account
# ================================

class SignInRequest(BaseModel):
    """Credentials for signing in."""
    email: EmailStr = Field(..., description="Account e-mail")
    password: str = Field(..., description="Account password")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_length(v)


class SignUpRequest(BaseModel):
    """
    Credentials for a new account.

    Passwords need 8-100 characters with an uppercase letter, a lowercase
    letter and a digit.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "ada@example.com", "password": "Secret123"}
        }
    )

    email: EmailStr = Field(..., description="Account e-mail")
    password: str = Field(..., description="Account password")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserResponse(BaseModel):
    """Public view of a user. Password hash and verification code are omitted."""
    id: int
    name: Optional[str] = None
    email: str
    role: str
    created_at: datetime
    mobile_country_code: Optional[str] = None
    mobile_number: Optional[str] = None
    mobile_verified: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            created_at=user.created_at,
            mobile_country_code=user.mobile_country_code,
            mobile_number=user.mobile_number,
            mobile_verified=user.mobile_verified,
        )


class UserEnvelope(BaseModel):
    user: UserResponse


class AccountUpdateRequest(BaseModel):
    name: str = Field(..., description="Display name (1-100 characters)")
    email: EmailStr = Field(..., description="New e-mail address")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        if len(v) > 100:
            raise ValueError("Name too long")
        return v


class AccountUpdateResponse(BaseModel):
    user: UserResponse
    success: str


class PasswordUpdateRequest(BaseModel):
    current_password: str = Field(..., description="Current password")
    new_password: str = Field(..., description="New password")
    confirm_password: str = Field(..., description="New password again")

    @field_validator("current_password", "confirm_password")
    @classmethod
    def validate_length(cls, v: str) -> str:
        return _check_password_length(v)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password_strength(v)


class SuccessResponse(BaseModel):
    success: str


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., description="Current password, as confirmation")

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_length(v)


class ActivityResponse(BaseModel):
    id: int
    action: str
    timestamp: datetime
    ip_address: Optional[str] = None

    @classmethod
    def from_log(cls, log: ActivityLog) -> "ActivityResponse":
        return cls(id=log.id, action=log.action, timestamp=log.timestamp, ip_address=log.ip_address)


class ActivityListResponse(BaseModel):
    activity: List[ActivityResponse] = Field(default_factory=list)


# ================================
# Mobile verification
# ================================

class MobileNumberRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"mobile_number": "+15551234567"}}
    )

    mobile_number: str = Field(..., description="Number with country code, e.g. +15551234567")

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Mobile number is required")
        return v


class MobileVerifyRequest(BaseModel):
    code: str = Field(..., description="Six-digit verification code")

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Verification code is required")
        return v


class MobileResponse(BaseModel):
    success: bool
    message: str


# ================================
# Health
# ================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="healthy or degraded")
    components: Dict[str, str] = Field(default_factory=dict, description="Component status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Check time (UTC)")
