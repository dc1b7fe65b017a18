"""
Account domain service - profile management and verified email change.

The email change mirrors registration verification but is scoped by the
record's target email. Address availability is checked when the change is
requested and again when it is confirmed, since another account may claim
the address in between.
"""

import logging
import uuid
from dataclasses import dataclass

from .auth import normalize_email
from .exceptions import (
    EmailExists,
    EmailSameAsCurrent,
    UserNotFound,
    VerificationAttemptsExceeded,
    VerificationCodeInvalid,
    VerificationCodeNotFound,
    VerificationNotFound,
)
from .models import ProfileUpdate, User
from .ports import CheckResult, EmailSender, UserRepository
from .verification import VerificationEngine

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = (
    "username",
    "first_name",
    "last_name",
    "birth_date",
    "gender",
    "avatar_url",
    "training_level",
)


@dataclass
class AccountService:
    """Domain service for an authenticated user's own account."""

    users: UserRepository
    verification: VerificationEngine
    email_sender: EmailSender

    def get_profile(self, user_id: uuid.UUID) -> User:
        return self.users.get_by_id(user_id)

    def update_profile(self, user_id: uuid.UUID, changes: ProfileUpdate) -> User:
        """
        Apply a partial profile update.

        Raises:
            UserNotFound: account missing or deleted
            UsernameExists: new username taken by another account
        """
        user = self.users.get_by_id(user_id)
        for name in _PROFILE_FIELDS:
            value = getattr(changes, name)
            if value is None:
                continue
            if name == "username":
                value = value.strip()
            setattr(user, name, value)
        user.touch()
        self.users.update(user)
        return user

    def delete_account(self, user_id: uuid.UUID) -> None:
        """Soft delete. Raises UserNotFound if already gone."""
        self.users.soft_delete(user_id)
        self.verification.records.delete_by_user_id(user_id)
        logger.info("Account deleted: user=%s", user_id)

    def list_users(self) -> list[User]:
        return self.users.list()

    def request_email_change(self, user_id: uuid.UUID, new_email: str) -> None:
        """
        Send a confirmation code to a new address.

        Any earlier pending change for the user is superseded.

        Raises:
            EmailSameAsCurrent: nothing would change
            EmailExists: address owned by another account
        """
        new_email = normalize_email(new_email)
        user = self.users.get_by_id(user_id)

        if user.email == new_email:
            raise EmailSameAsCurrent()
        self._ensure_available(new_email, user_id)

        records = self.verification.records
        records.delete_email_change_by_user_id(user_id)
        _, code = self.verification.issue(user_id, target_email=new_email)
        self.email_sender.send_verification_code(new_email, code)

    def verify_email_change(
        self, user_id: uuid.UUID, code: str, new_email: str | None = None
    ) -> User:
        """
        Confirm a pending email change.

        With ``new_email`` only a record for that exact target is accepted;
        otherwise the newest pending change is used.

        Raises:
            VerificationCodeNotFound: no pending change (or expired)
            VerificationCodeInvalid: wrong code, attempts remain
            VerificationAttemptsExceeded: limit reached; pending change dropped
            EmailExists: address claimed by another account since the request;
                pending change dropped
        """
        user = self.users.get_by_id(user_id)
        records = self.verification.records

        try:
            if new_email is not None:
                record = records.get_active_by_user_id_and_target_email(
                    user_id, normalize_email(new_email)
                )
            else:
                record = records.get_active_email_change_by_user_id(user_id)
            result = self.verification.check(record, code)
        except VerificationNotFound:
            raise VerificationCodeNotFound() from None

        if result is CheckResult.EXPIRED:
            records.delete_email_change_by_user_id(user_id)
            raise VerificationCodeNotFound()
        if result is CheckResult.ATTEMPTS_EXCEEDED:
            records.delete_email_change_by_user_id(user_id)
            raise VerificationAttemptsExceeded()
        if result is CheckResult.INVALID:
            raise VerificationCodeInvalid()

        # Another account may claim the address before or during the write
        target = record.target_email
        try:
            self._ensure_available(target, user_id)
            user.email = target
            user.email_verified = True
            user.touch()
            self.users.update(user)
        except EmailExists:
            records.delete_email_change_by_user_id(user_id)
            logger.warning("Email change lost a race for the target address: user=%s", user_id)
            raise
        records.delete_email_change_by_user_id(user_id)
        logger.info("Email changed: user=%s", user_id)
        return user

    def _ensure_available(self, email: str, user_id: uuid.UUID) -> None:
        try:
            owner = self.users.get_by_email(email)
        except UserNotFound:
            return
        if owner.id != user_id:
            raise EmailExists()
