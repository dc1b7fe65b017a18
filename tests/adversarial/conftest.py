"""
Shared fixtures for adversarial tests.

Attacks run against the wired services over the thread-safe in-memory
repositories; the PostgreSQL variants live in tests/integration.
"""

import pytest

from tests.fakes import VICTIM_EMAIL, VICTIM_PASSWORD, Services

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def pending_victim(services: Services) -> str:
    """Register an unverified account and return the code that was mailed."""
    services.auth.register(VICTIM_EMAIL, VICTIM_PASSWORD, "victim")
    return services.sender.last_code_for(VICTIM_EMAIL)
