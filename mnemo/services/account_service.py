"""
Account management service.

Sign-up and sign-in, profile and password changes, soft deletion, the
activity log, data export and mobile-number verification.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mnemo.core.config import Settings, settings as default_settings
from mnemo.core.exceptions import AccountError
from mnemo.core.security import hash_password, verify_password
from mnemo.models.memory import ActivityLog, ActivityType, Memory, User
from mnemo.utils.dates import utcnow
from mnemo.utils.security import generate_verification_code, parse_phone_number
from mnemo.utils.sms import SMSService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password. Please try again."
RECENT_ACTIVITY_LIMIT = 10


class AccountService:
    """User account operations."""

    def __init__(self, sms_service: SMSService, config: Optional[Settings] = None):
        self.sms_service = sms_service
        self.config = config or default_settings

    # ================================
    # Lookup
    # ================================

    def get_active_user(self, db: Session, user_id: int) -> Optional[User]:
        """Fetch a user unless missing or soft-deleted."""
        user = db.get(User, user_id)
        if user is None or user.is_deleted:
            return None
        return user

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    # ================================
    # Activity log
    # ================================

    def log_activity(
        self,
        db: Session,
        user_id: int,
        action: ActivityType,
        ip_address: Optional[str] = None
    ) -> None:
        """
        Record an account event.

        Best effort: a failed write is logged and rolled back, never raised.
        """
        try:
            db.add(ActivityLog(user_id=user_id, action=action.value, ip_address=ip_address))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Activity log skipped for user {user_id} ({action.value}): {e}")

    def recent_activity(self, db: Session, user_id: int, limit: int = RECENT_ACTIVITY_LIMIT) -> List[ActivityLog]:
        return (
            db.query(ActivityLog)
            .filter(ActivityLog.user_id == user_id)
            .order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())
            .limit(limit)
            .all()
        )

    # ================================
    # Sign-up / sign-in
    # ================================

    def sign_up(self, db: Session, email: str, password: str, ip_address: Optional[str] = None) -> User:
        """
        Create an account.

        Raises:
            AccountError: If the e-mail is already registered
        """
        if self.get_user_by_email(db, email) is not None:
            raise AccountError("Email already registered. Please use a different email or sign in.")

        user = User(email=email, password_hash=hash_password(password, self.config.bcrypt_rounds))
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AccountError("Email already registered. Please use a different email or sign in.")
        db.refresh(user)

        logger.info(f"Created user {user.id}")
        self.log_activity(db, user.id, ActivityType.SIGN_UP, ip_address)
        return user

    def authenticate(self, db: Session, email: str, password: str, ip_address: Optional[str] = None) -> User:
        """
        Verify credentials.

        Raises:
            AccountError: 401 for unknown e-mail, deleted account or wrong password
        """
        user = self.get_user_by_email(db, email)
        if user is None or user.is_deleted or not verify_password(password, user.password_hash):
            raise AccountError(INVALID_CREDENTIALS, status_code=401)

        self.log_activity(db, user.id, ActivityType.SIGN_IN, ip_address)
        return user

    def sign_out(self, db: Session, user: User, ip_address: Optional[str] = None) -> None:
        self.log_activity(db, user.id, ActivityType.SIGN_OUT, ip_address)

    # ================================
    # Profile
    # ================================

    def update_account(
        self,
        db: Session,
        user: User,
        name: str,
        email: str,
        ip_address: Optional[str] = None
    ) -> User:
        """
        Change display name and e-mail.

        Raises:
            AccountError: If the e-mail belongs to another account
        """
        existing = self.get_user_by_email(db, email)
        if existing is not None and existing.id != user.id:
            raise AccountError("Email already in use.")

        user.name = name
        user.email = email
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise AccountError("Email already in use.")
        db.refresh(user)

        self.log_activity(db, user.id, ActivityType.UPDATE_ACCOUNT, ip_address)
        return user

    def update_password(
        self,
        db: Session,
        user: User,
        current_password: str,
        new_password: str,
        confirm_password: str,
        ip_address: Optional[str] = None
    ) -> None:
        """
        Change the password after checking the current one.

        Raises:
            AccountError: Wrong current password, unchanged password or
            mismatched confirmation
        """
        if not verify_password(current_password, user.password_hash):
            raise AccountError("Current password is incorrect.")
        if current_password == new_password:
            raise AccountError("New password must be different from the current password.")
        if confirm_password != new_password:
            raise AccountError("New password and confirmation password do not match.")

        user.password_hash = hash_password(new_password, self.config.bcrypt_rounds)
        db.commit()

        logger.info(f"Password updated for user {user.id}")
        self.log_activity(db, user.id, ActivityType.UPDATE_PASSWORD, ip_address)

    def delete_account(self, db: Session, user: User, password: str, ip_address: Optional[str] = None) -> None:
        """
        Soft-delete the account.

        The e-mail is rewritten so the address can register again. Memories
        are left in place.

        Raises:
            AccountError: If the password is wrong
        """
        if not verify_password(password, user.password_hash):
            raise AccountError("Incorrect password. Account deletion failed.")

        self.log_activity(db, user.id, ActivityType.DELETE_ACCOUNT, ip_address)

        user.deleted_at = utcnow()
        user.email = f"{user.email}-{user.id}-deleted"
        db.commit()
        logger.info(f"Soft-deleted user {user.id}")

    # ================================
    # Export
    # ================================

    def export_data(self, db: Session, user: User) -> Dict[str, Any]:
        """
        Build the personal data export.

        Returns:
            Dict[str, Any]: {"profile": {...}, "memories": [...]}, without
            password hash, verification code or embeddings
        """
        memories = (
            db.query(Memory)
            .filter(Memory.user_id == user.id)
            .order_by(Memory.created_at.asc(), Memory.id.asc())
            .all()
        )
        return {
            "profile": {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "created_at": user.created_at.isoformat() if user.created_at else None,
            },
            "memories": [
                {
                    "id": memory.id,
                    "content": memory.content,
                    "category": memory.category,
                    "tags": memory.get_tags(),
                    "created_at": memory.created_at.isoformat() if memory.created_at else None,
                }
                for memory in memories
            ],
        }

    # ================================
    # Mobile verification
    # ================================

    async def request_mobile_verification(self, db: Session, user: User, mobile_number: str) -> None:
        """
        Store a new mobile number and text it a verification code.

        Resets any previous verification. SMS failures are logged; the code
        stays valid so the user can retry verification.

        Raises:
            AccountError: If the number is not in +<country code><digits> form
        """
        try:
            country_code, number = parse_phone_number(mobile_number)
        except ValueError as e:
            raise AccountError(str(e))

        code = generate_verification_code()
        user.mobile_country_code = country_code
        user.mobile_number = number
        user.mobile_verification_token = code
        user.mobile_verification_expires = utcnow() + timedelta(minutes=self.config.mobile_code_ttl_minutes)
        user.mobile_verified = None
        db.commit()

        self.log_activity(db, user.id, ActivityType.UPDATE_MOBILE)

        result = await self.sms_service.send_verification_code(f"{country_code}{number}", code)
        if not result.success:
            logger.warning(f"Verification SMS not delivered for user {user.id}: {result.error}")

    def verify_mobile(self, db: Session, user: User, code: str) -> None:
        """
        Confirm the mobile number with the texted code.

        Raises:
            AccountError: If the code is wrong or expired
        """
        if not user.mobile_verification_token or code != user.mobile_verification_token:
            raise AccountError("Invalid verification code")

        if user.mobile_verification_expires is None or utcnow() > user.mobile_verification_expires:
            raise AccountError("Verification code has expired. Please request a new one.")

        user.mobile_verified = utcnow()
        user.mobile_verification_token = None
        user.mobile_verification_expires = None
        db.commit()

        self.log_activity(db, user.id, ActivityType.VERIFY_MOBILE)
