"""
Memory API endpoints.

CRUD over the signed-in user's memories. Every operation is scoped to the
owner; another user's memory id behaves exactly like a missing one.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from mnemo.api.dependencies import get_current_user, get_memory_service
from mnemo.core.database import get_db
from mnemo.models.memory import User
from mnemo.models.schemas import (
    MemoryCreate, MemoryEnvelope, MemoryListResponse, MemoryResponse,
    MemoryUpdate, OkResponse
)
from mnemo.services.memory_service import MemoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/memories", tags=["memories"])

NOT_FOUND = "Memory not found or unauthorized"


def parse_memory_id(memory_id: str) -> int:
    """
    Validate a memory id path segment.

    Raises:
        HTTPException: 400 unless the id is a positive integer
    """
    try:
        value = int(memory_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid memory ID")
    if value <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid memory ID")
    return value


@router.get("", response_model=MemoryListResponse)
async def list_memories(
    user: User = Depends(get_current_user),
    service: MemoryService = Depends(get_memory_service),
    db: Session = Depends(get_db)
):
    """
    List the user's memories.

    Returns a category grouping and the same groups flattened in category
    order; newest first within each category.
    """
    grouped, items = service.list_memories(db, user.id)
    return MemoryListResponse(
        grouped={
            category: [MemoryResponse.from_memory(memory) for memory in memories]
            for category, memories in grouped.items()
        },
        items=[MemoryResponse.from_memory(memory) for memory in items],
    )


@router.post("", response_model=MemoryEnvelope)
async def create_memory(
    request: MemoryCreate,
    user: User = Depends(get_current_user),
    service: MemoryService = Depends(get_memory_service),
    db: Session = Depends(get_db)
):
    """
    Create a memory.

    Example:
        POST /api/memories
        {"content": "Allergic to peanuts", "category": "health", "tags": ["allergy"]}
    """
    memory = await service.create_memory(db, user.id, request)
    return MemoryEnvelope(memory=MemoryResponse.from_memory(memory))


@router.put("/{memory_id}", response_model=MemoryEnvelope)
async def update_memory(
    memory_id: str,
    request: MemoryUpdate,
    user: User = Depends(get_current_user),
    service: MemoryService = Depends(get_memory_service),
    db: Session = Depends(get_db)
):
    """Replace a memory's content, category and tags."""
    memory = await service.update_memory(db, user.id, parse_memory_id(memory_id), request)
    if memory is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return MemoryEnvelope(memory=MemoryResponse.from_memory(memory))


@router.delete("/{memory_id}", response_model=OkResponse)
async def delete_memory(
    memory_id: str,
    user: User = Depends(get_current_user),
    service: MemoryService = Depends(get_memory_service),
    db: Session = Depends(get_db)
):
    """Delete a memory."""
    if not service.delete_memory(db, user.id, parse_memory_id(memory_id)):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return OkResponse(ok=True)
