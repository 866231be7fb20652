"""
Shared fixtures for Gateway Service tests.
"""

import pytest

from shared.test_helpers import KeyPair, generate_es256_keypair


@pytest.fixture(scope="session")
def keys() -> KeyPair:
    """ES256 key pair reused across the session."""
    return generate_es256_keypair()


@pytest.fixture(scope="session")
def other_keys() -> KeyPair:
    """A second, unrelated key pair."""
    return generate_es256_keypair()
