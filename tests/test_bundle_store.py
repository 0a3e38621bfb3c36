"""
test_bundle_store.py — Unit Tests for Local Bundle Storage
=============================================================
"""

import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from custody_node.core.errors import NotFoundError, ValidationError
from custody_node.core.models import Bundle
from custody_node.services.bundle_store import STORAGE_PERIOD_DURATION, BundleStore

BUNDLE_ID = "0x" + "ab" * 32
OTHER_ID = "0x" + "cd" * 32
SHELTERER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
PEER_URL = "http://peer.example:9876"


@pytest.fixture
def ledger():
    mock = MagicMock()
    mock.node_url = AsyncMock(return_value=PEER_URL)
    return mock


@pytest.fixture
def peer_client():
    mock = MagicMock()
    mock.get_json = AsyncMock(
        return_value={"bundleId": BUNDLE_ID, "storagePeriods": 2, "entries": []}
    )
    return mock


@pytest.fixture
def store(tmp_path, ledger, peer_client):
    return BundleStore(str(tmp_path / "bundles"), ledger, peer_client)


class TestDownload:
    """Tests for fetching bundles from shelterers."""

    @pytest.mark.asyncio
    async def test_download_stores_bundle(self, store, ledger, peer_client):
        """Downloaded bundle is fetched from the shelterer and kept."""
        bundle = await store.download_bundle(BUNDLE_ID, SHELTERER)
        ledger.node_url.assert_awaited_once_with(SHELTERER)
        peer_client.get_json.assert_awaited_once_with(PEER_URL, f"/bundle/{BUNDLE_ID}")
        assert bundle.bundle_id == BUNDLE_ID
        assert store.get(BUNDLE_ID).content == bundle.content
        assert store.list_bundles() == [BUNDLE_ID]

    @pytest.mark.asyncio
    async def test_wrong_bundle_rejected(self, store, peer_client):
        """A peer answering with another bundle is a validation error."""
        peer_client.get_json.return_value = {"bundleId": OTHER_ID}
        with pytest.raises(ValidationError):
            await store.download_bundle(BUNDLE_ID, SHELTERER)
        assert store.list_bundles() == []

    @pytest.mark.asyncio
    async def test_peer_errors_propagate(self, store, peer_client):
        """Errors from the peer reach the caller unchanged."""
        peer_client.get_json.side_effect = NotFoundError("Not found")
        with pytest.raises(NotFoundError):
            await store.download_bundle(BUNDLE_ID, SHELTERER)


class TestSheltering:
    """Tests for retention and cleanup."""

    @pytest.mark.asyncio
    async def test_expiration_uses_storage_periods(self, store):
        """Hold time is the paid storage periods from now."""
        store.store(Bundle(BUNDLE_ID, {"bundleId": BUNDLE_ID, "storagePeriods": 2}))
        before = int(time.time())
        hold_until = await store.update_sheltering_expiration_date(BUNDLE_ID)
        assert before + 2 * STORAGE_PERIOD_DURATION <= hold_until
        assert hold_until <= int(time.time()) + 2 * STORAGE_PERIOD_DURATION

    @pytest.mark.asyncio
    async def test_expiration_for_unknown_bundle(self, store):
        """Sheltering a bundle we do not have fails."""
        with pytest.raises(ValidationError):
            await store.update_sheltering_expiration_date(BUNDLE_ID)

    @pytest.mark.asyncio
    async def test_cleanup_removes_unsheltered(self, store):
        """Bundles downloaded but never sheltered are dropped."""
        store.store(Bundle(BUNDLE_ID, {"bundleId": BUNDLE_ID}))
        store.store(Bundle(OTHER_ID, {"bundleId": OTHER_ID}))
        await store.update_sheltering_expiration_date(OTHER_ID)

        removed = await store.cleanup_bundles()

        assert removed == [BUNDLE_ID]
        assert store.list_bundles() == [OTHER_ID]

    @pytest.mark.asyncio
    async def test_cleanup_removes_expired(self, store):
        """Bundles past their hold time are dropped with their metadata."""
        store.store(Bundle(BUNDLE_ID, {"bundleId": BUNDLE_ID}))
        hold_until = await store.update_sheltering_expiration_date(BUNDLE_ID)

        assert await store.cleanup_bundles(now=hold_until - 1) == []
        assert await store.cleanup_bundles(now=hold_until) == [BUNDLE_ID]
        assert list(store.data_dir.iterdir()) == []


class TestPaths:
    """Tests for bundle id validation."""

    @pytest.mark.parametrize("bad_id", ["../etc/passwd", "0x1234", "ab" * 32, ""])
    def test_invalid_ids_rejected(self, store, bad_id):
        """Only 0x-prefixed 32-byte hex ids map to files."""
        with pytest.raises(ValidationError):
            store.get(bad_id)

    def test_missing_bundle(self, store):
        """Unknown bundles return None."""
        assert store.get(BUNDLE_ID) is None

    def test_reachable(self, store):
        """A writable data directory is reachable."""
        assert store.is_reachable() is True
