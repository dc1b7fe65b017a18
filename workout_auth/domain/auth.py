"""
Authentication domain service - registration, verification and sessions.

Use cases
=========

register(email, password, username)
    Creates an unverified user and sends a verification code. No tokens.
verify_email(email, code)
    Checks the code through the VerificationEngine; on success marks the
    email verified and returns a token pair.
login(email, password)
    Token pair for a verified user. Unknown email and wrong password are
    reported identically (InvalidCredentials).
refresh(refresh_token)
    Rotates the pair. The previous refresh token is not revoked.
resend_verification_code(email)
    Supersedes any outstanding code. Unknown emails succeed silently.

Business-rule violations are raised as AuthError subclasses; see
exceptions.py for the client-visible codes.
"""

import logging
import uuid
from dataclasses import dataclass

from .exceptions import (
    EmailAlreadyVerified,
    EmailExists,
    EmailNotVerified,
    EmailUnverifiedExists,
    InvalidCredentials,
    InvalidRefreshToken,
    TokenError,
    UserNotFound,
    UsernameExists,
    VerificationAttemptsExceeded,
    VerificationCodeInvalid,
    VerificationCodeNotFound,
    VerificationNotFound,
)
from .models import TokenPair, User
from .ports import (
    CheckResult,
    CredentialHasher,
    EmailSender,
    ResendOutcome,
    UserRepository,
)
from .tokens import TokenService
from .verification import VerificationEngine

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Strip whitespace + lowercase."""
    return email.strip().lower()


@dataclass
class AuthService:
    """
    Domain service for authentication.

    Orchestrates users, verification records, hashing, email delivery and
    token issuance. Holds no per-request state; every cross-request
    guarantee comes from the repositories.
    """

    users: UserRepository
    verification: VerificationEngine
    hasher: CredentialHasher
    tokens: TokenService
    email_sender: EmailSender

    def register(self, email: str, password: str, username: str) -> User:
        """
        Register a new, unverified user and send a verification code.

        Raises:
            EmailExists: email belongs to a verified account
            EmailUnverifiedExists: email belongs to an unverified account
            UsernameExists: username already taken
        """
        normalized_email = normalize_email(email)
        username = username.strip()

        existing = self._find_by_email(normalized_email)
        if existing is not None:
            if existing.email_verified:
                raise EmailExists()
            raise EmailUnverifiedExists()

        try:
            self.users.get_by_username(username)
        except UserNotFound:
            pass
        else:
            raise UsernameExists()

        user = User(
            email=normalized_email,
            password_hash=self.hasher.hash(password),
            username=username,
        )
        # The store re-checks uniqueness for requests racing past the lookups above
        self.users.create(user)
        logger.info("User registered: user=%s", user.id)

        self._send_code(user)
        return user

    def verify_email(self, email: str, code: str) -> tuple[User, TokenPair]:
        """
        Verify the registration email with a code and open a session.

        Raises:
            UserNotFound: no active account for the email
            EmailAlreadyVerified: nothing left to verify
            VerificationCodeNotFound: no active code (never issued, expired,
                exhausted or superseded)
            VerificationCodeInvalid: wrong code, attempts remain
            VerificationAttemptsExceeded: wrong code, limit reached; the
                record is deleted and a resend is required
        """
        user = self.users.get_by_email(normalize_email(email))
        if user.email_verified:
            raise EmailAlreadyVerified()

        records = self.verification.records
        try:
            record = records.get_active_by_user_id(user.id)
            result = self.verification.check(record, code)
        except VerificationNotFound:
            raise VerificationCodeNotFound() from None

        if result is CheckResult.EXPIRED:
            records.delete_by_user_id(user.id)
            raise VerificationCodeNotFound()
        if result is CheckResult.ATTEMPTS_EXCEEDED:
            records.delete_by_user_id(user.id)
            raise VerificationAttemptsExceeded()
        if result is CheckResult.INVALID:
            raise VerificationCodeInvalid()

        user.email_verified = True
        user.touch()
        self.users.update(user)
        records.delete_by_user_id(user.id)
        logger.info("Email verified: user=%s", user.id)

        return user, self.tokens.issue_pair(user)

    def login(self, email: str, password: str) -> tuple[User, TokenPair]:
        """
        Authenticate with email + password.

        Raises:
            InvalidCredentials: unknown email or wrong password
            EmailNotVerified: credentials valid but email unverified
        """
        user = self._find_by_email(normalize_email(email))
        if user is None:
            # Same bcrypt cost as a real comparison
            self.hasher.compare(self.hasher.dummy_hash, password)
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()

        if not self.hasher.compare(user.password_hash, password):
            logger.info("Login failed: wrong password for user=%s", user.id)
            raise InvalidCredentials()

        if not user.email_verified:
            raise EmailNotVerified()

        return user, self.tokens.issue_pair(user)

    def refresh(self, refresh_token: str) -> tuple[User, TokenPair]:
        """
        Exchange a refresh token for a new pair.

        Raises:
            InvalidRefreshToken: bad token, unknown or deleted user
            EmailNotVerified: user no longer verified
        """
        try:
            claims = self.tokens.verify_refresh(refresh_token)
        except TokenError as e:
            logger.info("Refresh rejected: %s", e.code)
            raise InvalidRefreshToken() from None

        user = self._find_by_id(claims.user_id)
        if user is None or user.is_deleted:
            raise InvalidRefreshToken()
        if not user.email_verified:
            raise EmailNotVerified()

        pair = self.tokens.issue_pair(user)
        logger.info("Tokens refreshed: user=%s old_jti=%s new_jti=%s", user.id, claims.jti, pair.refresh_jti)
        return user, pair

    def resend_verification_code(self, email: str) -> ResendOutcome:
        """
        Replace any outstanding code with a fresh one.

        Unknown emails succeed silently so the endpoint cannot be used to
        enumerate accounts.
        """
        user = self._find_by_email(normalize_email(email))
        if user is None:
            return ResendOutcome.UNKNOWN_EMAIL
        if user.email_verified:
            return ResendOutcome.ALREADY_VERIFIED

        self.verification.records.delete_by_user_id(user.id)
        self._send_code(user)
        return ResendOutcome.SENT

    def _send_code(self, user: User) -> None:
        _, code = self.verification.issue(user.id)
        self.email_sender.send_verification_code(user.email, code)

    def _find_by_email(self, email: str) -> User | None:
        try:
            return self.users.get_by_email(email)
        except UserNotFound:
            return None

    def _find_by_id(self, user_id: str) -> User | None:
        try:
            return self.users.get_by_id(uuid.UUID(user_id))
        except (ValueError, UserNotFound):
            return None
