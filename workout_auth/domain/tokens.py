"""
HMAC-signed JWT access and refresh tokens.

Access and refresh tokens share one claims shape but are signed with
independent secrets, so a token of one kind never validates as the other
and a leaked access secret cannot forge refresh tokens.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from .exceptions import IssuerMismatch, SignatureInvalid, TokenExpired, TokenMalformed
from .models import TokenClaims, TokenPair, User

logger = logging.getLogger(__name__)

HMAC_ALGORITHMS = frozenset({"HS256", "HS384", "HS512"})


class TokenService:
    """Issues and validates access/refresh tokens."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        issuer: str = "",
        algorithm: str = "HS256",
    ) -> None:
        if algorithm not in HMAC_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm: {algorithm}")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self._access_ttl = access_ttl
        self._refresh_ttl = refresh_ttl
        self._issuer = issuer
        self._algorithm = algorithm

    def issue_access(self, user: User) -> str:
        """Create a short-lived access token carrying a profile snapshot."""
        payload = self._payload(user, self._access_ttl)
        return jwt.encode(payload, self._access_secret, algorithm=self._algorithm)

    def issue_refresh(self, user: User) -> tuple[str, str]:
        """
        Create a long-lived refresh token.

        Returns:
            Tuple of (token, jti). The jti is for traceability only; it is
            not persisted.
        """
        jti = str(uuid.uuid4())
        payload = self._payload(user, self._refresh_ttl)
        payload["jti"] = jti
        return jwt.encode(payload, self._refresh_secret, algorithm=self._algorithm), jti

    def issue_pair(self, user: User) -> TokenPair:
        access = self.issue_access(user)
        refresh, jti = self.issue_refresh(user)
        return TokenPair(access_token=access, refresh_token=refresh, refresh_jti=jti)

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(token, self._access_secret)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(token, self._refresh_secret)

    def _payload(self, user: User, ttl: timedelta) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(user.id),
            "email": user.email,
            "username": user.username,
            "role": user.role.value,
            "training_level": user.training_level.value,
            "email_verified": user.email_verified,
            "iat": now,
            "exp": now + ttl,
        }
        if self._issuer:
            payload["iss"] = self._issuer
        return payload

    def _verify(self, token: str, secret: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            SignatureInvalid: non-HMAC algorithm or bad signature
            TokenExpired: exp in the past
            TokenMalformed: undecodable token or missing claims
            IssuerMismatch: issuer set on both sides and different
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise TokenMalformed(str(e)) from None

        # Reject algorithm substitution (e.g. "none" or RS256 with a public key as secret)
        if header.get("alg") not in HMAC_ALGORITHMS:
            raise SignatureInvalid(f"unexpected signing algorithm: {header.get('alg')!r}")

        try:
            payload: dict[str, Any] = jwt.decode(
                token,
                secret,
                algorithms=[self._algorithm],
                options={"require": ["sub", "exp", "iat"], "verify_iss": False},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpired() from None
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as e:
            raise SignatureInvalid(str(e)) from None
        except jwt.InvalidTokenError as e:
            raise TokenMalformed(str(e)) from None

        token_issuer = payload.get("iss", "")
        if token_issuer and self._issuer and token_issuer != self._issuer:
            raise IssuerMismatch(f"unexpected issuer: {token_issuer!r}")

        try:
            return TokenClaims(
                user_id=payload["sub"],
                email=payload.get("email", ""),
                username=payload.get("username", ""),
                role=payload.get("role", ""),
                training_level=payload.get("training_level", ""),
                email_verified=bool(payload.get("email_verified", False)),
                issuer=token_issuer,
                subject=payload["sub"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
                jti=payload.get("jti"),
            )
        except (TypeError, ValueError) as e:
            raise TokenMalformed(str(e)) from None
