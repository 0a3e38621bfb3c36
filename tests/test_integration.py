"""
test_integration.py — Worker Loop Integration Tests
======================================================
Runs the challenge worker loop against real on-disk storage and
logs, with the ledger and peers replaced by in-memory doubles.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from custody_node.services.bundle_store import BundleStore
from custody_node.services.worker_log import WorkerLogRepository
from custody_node.workers.challenge_worker import ChallengeResolutionWorker
from custody_node.workers.strategies import ResolveAllStrategy

from conftest import ENOUGH_BALANCE, LOW_BALANCE, NODE_ADDRESS, make_challenge


@pytest.fixture
def ledger():
    mock = MagicMock()
    mock.address = NODE_ADDRESS
    mock.get_balance = AsyncMock(return_value=ENOUGH_BALANCE)
    mock.node_url = AsyncMock(return_value="http://peer.example:9876")
    return mock


@pytest.fixture
def peer_client():
    mock = MagicMock()

    async def get_json(base_url, path):
        bundle_id = path.rsplit("/", 1)[-1]
        return {"bundleId": bundle_id, "storagePeriods": 1}

    mock.get_json = AsyncMock(side_effect=get_json)
    return mock


@pytest.fixture
def challenges_repository():
    mock = MagicMock()
    mock.ongoing_challenges = AsyncMock(
        return_value=[make_challenge(1), make_challenge(2)]
    )
    mock.resolve_challenge = AsyncMock(return_value="0xtx")
    return mock


@pytest.fixture
def setup(tmp_path, ledger, peer_client, challenges_repository):
    bundle_store = BundleStore(str(tmp_path / "bundles"), ledger, peer_client)
    log_repo = WorkerLogRepository(str(tmp_path / "worker.jsonl"))
    worker = ChallengeResolutionWorker(
        ledger=ledger,
        bundle_store=bundle_store,
        worker_log_repository=log_repo,
        challenges_repository=challenges_repository,
        strategy=ResolveAllStrategy(interval=0.01),
    )
    return worker, bundle_store, log_repo


async def run_cycles(worker, counter, n, timeout=2.0):
    await worker.start()

    async def _wait():
        while counter.await_count < n:
            await asyncio.sleep(0.005)

    try:
        await asyncio.wait_for(_wait(), timeout)
    finally:
        await worker.stop()


class TestWorkerLoop:
    """End-to-end cycles through the scheduler."""

    @pytest.mark.asyncio
    async def test_won_bundle_is_kept(self, setup, challenges_repository):
        """The won bundle survives cleanup; the node keeps sheltering it."""
        worker, bundle_store, log_repo = setup
        await run_cycles(worker, challenges_repository.ongoing_challenges, 1)

        won = make_challenge(1)
        challenges_repository.resolve_challenge.assert_any_await(won.challenge_id)
        assert won.bundle_id in bundle_store.list_bundles()
        messages = [entry["message"] for entry in log_repo.get_logs()]
        assert "Challenge resolved, bundle is ours" in messages

    @pytest.mark.asyncio
    async def test_failed_resolutions_leave_nothing_behind(
        self, setup, challenges_repository
    ):
        """Bundles downloaded for lost races are cleaned up."""
        worker, bundle_store, _ = setup
        challenges_repository.resolve_challenge.side_effect = RuntimeError("lost")
        await run_cycles(worker, challenges_repository.ongoing_challenges, 2)

        assert bundle_store.list_bundles() == []
        assert challenges_repository.resolve_challenge.await_count >= 4

    @pytest.mark.asyncio
    async def test_out_of_funds_loop(self, setup, ledger, challenges_repository):
        """An underfunded node keeps polling its balance but nothing else."""
        worker, _, log_repo = setup
        ledger.get_balance.return_value = LOW_BALANCE
        await run_cycles(worker, ledger.get_balance, 3)

        challenges_repository.ongoing_challenges.assert_not_awaited()
        assert len(log_repo.get_logs()) == 1
