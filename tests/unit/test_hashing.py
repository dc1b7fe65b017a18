"""Unit tests for the bcrypt credential hasher."""

from unittest.mock import patch

import bcrypt
import pytest

from workout_auth.domain.exceptions import HashingError
from workout_auth.domain.hashing import BcryptHasher


@pytest.fixture(scope="module")
def hasher() -> BcryptHasher:
    return BcryptHasher(rounds=4)


class TestBcryptHasher:
    """Tests for hash/compare."""

    def test_hash_is_bcrypt_with_configured_cost(self, hasher: BcryptHasher) -> None:
        digest = hasher.hash("secure123")
        assert digest.startswith("$2b$04$")

    def test_hash_never_contains_secret(self, hasher: BcryptHasher) -> None:
        assert "secure123" not in hasher.hash("secure123")

    def test_compare_matches_original_secret(self, hasher: BcryptHasher) -> None:
        digest = hasher.hash("123456")
        assert hasher.compare(digest, "123456") is True

    def test_compare_rejects_other_secret(self, hasher: BcryptHasher) -> None:
        digest = hasher.hash("123456")
        assert hasher.compare(digest, "654321") is False

    def test_compare_with_malformed_digest_returns_false(self, hasher: BcryptHasher) -> None:
        """A corrupt stored digest is a mismatch, not a crash."""
        assert hasher.compare("not-a-bcrypt-hash", "123456") is False

    def test_salts_differ_per_hash(self, hasher: BcryptHasher) -> None:
        assert hasher.hash("same") != hasher.hash("same")

    def test_dummy_hash_is_valid_digest(self, hasher: BcryptHasher) -> None:
        """The timing-equalization digest is a real bcrypt hash."""
        assert hasher.dummy_hash.startswith("$2b$04$")
        assert hasher.compare(hasher.dummy_hash, "anything") is False

    def test_hashing_failure_raises_hashing_error(self, hasher: BcryptHasher) -> None:
        with patch.object(bcrypt, "gensalt", side_effect=OSError("rng unavailable")):
            with pytest.raises(HashingError):
                hasher.hash("secure123")
