"""
Adversarial tests for timing oracle prevention on login.

An attacker can tell "no such account" from "wrong password" if only the
latter pays for a bcrypt comparison. These tests check that both paths do
the same hashing work and produce the same error, rather than measuring
wall-clock time.
"""

from unittest.mock import patch

import pytest

from tests.fakes import VICTIM_EMAIL, VICTIM_PASSWORD, Services
from workout_auth.domain.exceptions import InvalidCredentials

pytestmark = pytest.mark.adversarial


class TestLoginTimingOracle:
    def test_unknown_email_still_runs_bcrypt(self, services: Services) -> None:
        with patch.object(services.hasher, "compare", wraps=services.hasher.compare) as compare:
            with pytest.raises(InvalidCredentials):
                services.auth.login("nobody@example.com", "some-password")

        compare.assert_called_once_with(services.hasher.dummy_hash, "some-password")

    def test_both_failure_paths_do_one_comparison(self, services: Services, pending_victim: str) -> None:
        services.auth.verify_email(VICTIM_EMAIL, pending_victim)

        with patch.object(services.hasher, "compare", wraps=services.hasher.compare) as compare:
            with pytest.raises(InvalidCredentials):
                services.auth.login(VICTIM_EMAIL, "wrong-password")
            wrong_password_calls = compare.call_count
            with pytest.raises(InvalidCredentials):
                services.auth.login("nobody@example.com", "wrong-password")

        assert wrong_password_calls == 1
        assert compare.call_count == 2

    def test_dummy_hash_uses_same_cost(self, services: Services) -> None:
        real = services.hasher.hash(VICTIM_PASSWORD)
        # "$2b$04$..." - identical algorithm and cost prefix
        assert services.hasher.dummy_hash[:7] == real[:7]
