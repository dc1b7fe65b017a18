"""
Verification engine - Email code state machine.

Lifecycle of a verification record
==================================

    issue()  ->  ACTIVE  (not expired, attempts < max_attempts)

From ACTIVE, check() yields one of:
    SUCCESS            code hash matches
    INVALID            mismatch, attempt recorded, still below the limit
    ATTEMPTS_EXCEEDED  mismatch and the committed count reached the limit
    EXPIRED            now > expires_at (checked first, no attempt consumed)

The caller deletes the record on SUCCESS, EXPIRED and ATTEMPTS_EXCEEDED, and
a resend supersedes any outstanding record.

Attempt counting never trusts the caller's snapshot. The repository
increments atomically (only while attempts < max_attempts) and returns the
committed value; the threshold decision is made from that value. Parallel
wrong guesses are therefore all counted, the counter cannot pass the limit,
and exactly one of them observes ATTEMPTS_EXCEEDED. Requests that lose the
race find no record (VerificationNotFound).
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta

from .codes import generate_numeric_code
from .models import VerificationRecord, utcnow
from .ports import CheckResult, CredentialHasher, VerificationRepository

logger = logging.getLogger(__name__)


class VerificationEngine:
    """Issues verification records and checks submitted codes against them."""

    def __init__(
        self,
        records: VerificationRepository,
        hasher: CredentialHasher,
        ttl: timedelta = timedelta(minutes=15),
        max_attempts: int = 5,
        code_length: int = 6,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.records = records
        self._hasher = hasher
        self._ttl = ttl
        self._max_attempts = max_attempts
        self._code_length = code_length
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(
        self, user_id: uuid.UUID, target_email: str | None = None
    ) -> tuple[VerificationRecord, str]:
        """
        Create and persist a fresh record.

        The raw code is returned once so the caller can deliver it; only its
        hash is stored. Callers delete superseded records first.

        Returns:
            Tuple of (persisted record, raw code)
        """
        code = generate_numeric_code(self._code_length)
        now = self._clock()
        record = VerificationRecord(
            user_id=user_id,
            code_hash=self._hasher.hash(code),
            expires_at=now + self._ttl,
            max_attempts=self._max_attempts,
            target_email=target_email,
            created_at=now,
        )
        record = self.records.create(record)
        logger.info(
            "Verification code issued: record=%s user=%s purpose=%s",
            record.id,
            user_id,
            "email_change" if record.is_email_change else "registration",
        )
        return record, code

    def check(self, record: VerificationRecord, code: str) -> CheckResult:
        """
        Check a submitted code against a record.

        Raises:
            VerificationNotFound: the record vanished or was exhausted by a
                concurrent request before this attempt could be counted
        """
        if record.is_expired(self._clock()):
            return CheckResult.EXPIRED

        if self._hasher.compare(record.code_hash, code):
            return CheckResult.SUCCESS

        attempts = self.records.increment_attempts(record.id)
        if attempts >= record.max_attempts:
            logger.warning(
                "Verification attempts exceeded: record=%s user=%s", record.id, record.user_id
            )
            return CheckResult.ATTEMPTS_EXCEEDED

        logger.info(
            "Invalid verification code: record=%s attempts=%d/%d",
            record.id,
            attempts,
            record.max_attempts,
        )
        return CheckResult.INVALID
