"""
conftest.py — Shared Fixtures
================================
Collaborator doubles for the challenge worker tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from custody_node.core.models import Bundle, Challenge
from custody_node.workers.strategies import ResolveAllStrategy

NODE_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
ENOUGH_BALANCE = 10 * 10**18
LOW_BALANCE = 23123


def make_challenge(n: int) -> Challenge:
    return Challenge(
        shelterer_id=f"0x{n:040x}",
        bundle_id=f"0x{n:064x}",
        challenge_id=f"0x{n + 1000:064x}",
    )


@pytest.fixture
def challenges():
    return [make_challenge(n) for n in range(1, 5)]


@pytest.fixture
def ledger():
    mock = MagicMock()
    mock.address = NODE_ADDRESS
    mock.get_balance = AsyncMock(return_value=ENOUGH_BALANCE)
    mock.is_connected = MagicMock(return_value=True)
    return mock


@pytest.fixture
def bundle_store():
    mock = MagicMock()
    mock.download_bundle = AsyncMock(
        side_effect=lambda bundle_id, shelterer_id: Bundle(
            bundle_id=bundle_id, content={"bundleId": bundle_id}
        )
    )
    mock.update_sheltering_expiration_date = AsyncMock(return_value=0)
    mock.cleanup_bundles = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def challenges_repository(challenges):
    mock = MagicMock()
    mock.ongoing_challenges = AsyncMock(return_value=challenges)
    mock.resolve_challenge = AsyncMock(return_value="0xtx")
    return mock


@pytest.fixture
def worker_log_repository():
    mock = MagicMock()
    mock.store_log = AsyncMock()
    return mock


class RecordingStrategy(ResolveAllStrategy):
    """Approves everything and records every call."""

    def __init__(self, interval: float = 0.01):
        super().__init__(interval)
        self.should_fetch_bundle = AsyncMock(return_value=True)
        self.should_resolve_challenge = AsyncMock(return_value=True)
        self.after_challenge_resolution = AsyncMock()


@pytest.fixture
def strategy():
    return RecordingStrategy()
