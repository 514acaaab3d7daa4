"""
Authentication endpoints.

Sign-up and sign-in issue the session cookie; sign-out clears it.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from mnemo.api.dependencies import get_account_service, get_client_ip, get_current_user
from mnemo.core.database import get_db
from mnemo.core.exceptions import AccountError
from mnemo.core.security import clear_session_cookie, set_session_cookie
from mnemo.models.memory import User
from mnemo.models.schemas import OkResponse, SignInRequest, SignUpRequest, UserEnvelope, UserResponse
from mnemo.services.account_service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/sign-up", response_model=UserEnvelope)
async def sign_up(
    request: SignUpRequest,
    http_request: Request,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """
    Create an account and start a session.

    Example:
        POST /api/auth/sign-up
        {"email": "ada@example.com", "password": "Secret123"}
    """
    try:
        user = accounts.sign_up(db, request.email, request.password, get_client_ip(http_request))
    except AccountError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    set_session_cookie(response, user.id)
    return UserEnvelope(user=UserResponse.from_user(user))


@router.post("/sign-in", response_model=UserEnvelope)
async def sign_in(
    request: SignInRequest,
    http_request: Request,
    response: Response,
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Verify credentials and start a session."""
    try:
        user = accounts.authenticate(db, request.email, request.password, get_client_ip(http_request))
    except AccountError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    set_session_cookie(response, user.id)
    return UserEnvelope(user=UserResponse.from_user(user))


@router.post("/sign-out", response_model=OkResponse)
async def sign_out(
    http_request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """End the session."""
    accounts.sign_out(db, user, get_client_ip(http_request))
    clear_session_cookie(response)
    return OkResponse(ok=True)
