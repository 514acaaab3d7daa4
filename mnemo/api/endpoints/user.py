"""
User account endpoints.

Profile, password, soft deletion, activity log, data export and mobile
verification for the signed-in user.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from mnemo.api.dependencies import get_account_service, get_client_ip, get_current_user
from mnemo.core.database import get_db
from mnemo.core.exceptions import AccountError
from mnemo.core.security import clear_session_cookie
from mnemo.models.memory import User
from mnemo.models.schemas import (
    AccountUpdateRequest, AccountUpdateResponse, ActivityListResponse, ActivityResponse,
    DeleteAccountRequest, MobileNumberRequest, MobileResponse, MobileVerifyRequest,
    OkResponse, PasswordUpdateRequest, SuccessResponse, UserEnvelope, UserResponse
)
from mnemo.services.account_service import AccountService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["user"])


def _reject(error: AccountError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.message)


@router.get("", response_model=UserEnvelope)
async def get_user(user: User = Depends(get_current_user)):
    """Current user's profile."""
    return UserEnvelope(user=UserResponse.from_user(user))


@router.put("/account", response_model=AccountUpdateResponse)
async def update_account(
    request: AccountUpdateRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Change display name and e-mail."""
    try:
        user = accounts.update_account(db, user, request.name, request.email, get_client_ip(http_request))
    except AccountError as e:
        raise _reject(e)
    return AccountUpdateResponse(user=UserResponse.from_user(user), success="Account updated successfully.")


@router.put("/password", response_model=SuccessResponse)
async def update_password(
    request: PasswordUpdateRequest,
    http_request: Request,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Change the password."""
    try:
        accounts.update_password(
            db,
            user,
            request.current_password,
            request.new_password,
            request.confirm_password,
            get_client_ip(http_request)
        )
    except AccountError as e:
        raise _reject(e)
    return SuccessResponse(success="Password updated successfully.")


@router.delete("/account", response_model=OkResponse)
async def delete_account(
    request: DeleteAccountRequest,
    http_request: Request,
    response: Response,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Soft-delete the account and end the session."""
    try:
        accounts.delete_account(db, user, request.password, get_client_ip(http_request))
    except AccountError as e:
        raise _reject(e)
    clear_session_cookie(response)
    return OkResponse(ok=True)


@router.get("/activity", response_model=ActivityListResponse)
async def get_activity(
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """The ten most recent account events."""
    logs = accounts.recent_activity(db, user.id)
    return ActivityListResponse(activity=[ActivityResponse.from_log(log) for log in logs])


@router.get("/export")
async def export_data(
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Download the user's profile and memories as a JSON attachment."""
    data = accounts.export_data(db, user)
    logger.info(f"Exported data for user {user.id}")
    return JSONResponse(
        content=data,
        headers={"Content-Disposition": f'attachment; filename="mnemo-export-{user.id}.json"'}
    )


@router.post("/mobile", response_model=MobileResponse)
async def update_mobile(
    request: MobileNumberRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """
    Store a mobile number and text it a verification code.

    Example:
        POST /api/user/mobile
        {"mobile_number": "+15551234567"}
    """
    try:
        await accounts.request_mobile_verification(db, user, request.mobile_number)
    except AccountError as e:
        raise _reject(e)
    return MobileResponse(success=True, message="Verification code sent")


@router.post("/mobile/verify", response_model=MobileResponse)
async def verify_mobile(
    request: MobileVerifyRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
    db: Session = Depends(get_db)
):
    """Confirm the mobile number with the texted code."""
    try:
        accounts.verify_mobile(db, user, request.code)
    except AccountError as e:
        raise _reject(e)
    return MobileResponse(success=True, message="Mobile number verified successfully")
