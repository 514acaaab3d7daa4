"""
Chat API endpoint.

Accepts a user message, answers it with memory context and stores any new
memories the model annotated.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mnemo.api.dependencies import get_chat_service, get_current_user
from mnemo.core.database import get_db
from mnemo.models.memory import User
from mnemo.models.schemas import ChatRequest, ChatResponse
from mnemo.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/llm", tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
    db: Session = Depends(get_db)
):
    """
    Answer a message using the user's memories.

    Example:
        POST /api/llm/chat
        {"message": "I like pasta"}

        Response:
        {"output": "Got it!"}

    Errors:
        400 when the message is empty or too long, 401 without a session,
        500 when the model is unavailable.
    """
    result = await service.chat(db, user, request.message)
    return ChatResponse(output=result.output)
