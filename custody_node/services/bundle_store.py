"""
bundle_store.py — Local Bundle Storage
=========================================
Keeps the bundles this node shelters on the local filesystem.

Each bundle is stored as `<bundle_id>.json` next to a
`<bundle_id>.meta.json` file recording when the node may let go
of it (`hold_until`, unix seconds). A bundle that was downloaded
but never sheltered has no `hold_until` and is dropped by the
next cleanup.
"""

import asyncio
import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Dict, List, Optional

from custody_node.core.errors import ValidationError
from custody_node.core.models import Bundle
from custody_node.services.peer_client import PeerClient

logger = logging.getLogger(__name__)

# One storage period is 13 weeks
STORAGE_PERIOD_DURATION = 13 * 7 * 24 * 60 * 60

BUNDLE_ID_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")


class BundleStore:
    """
    Downloads bundles from their shelterers and manages how long
    they are kept locally.
    """

    def __init__(self, data_dir: str, ledger, peer_client: PeerClient):
        """
        Initialize the bundle store.

        Args:
            data_dir: Directory where bundles are stored.
            ledger: Client used to look up shelterer URLs.
            peer_client: HTTP client for fetching bundles from peers.
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.ledger = ledger
        self.peer_client = peer_client
        logger.info("BundleStore initialized at %s", self.data_dir)

    def _bundle_path(self, bundle_id: str) -> Path:
        if not BUNDLE_ID_PATTERN.match(bundle_id):
            raise ValidationError(f"Invalid bundle id: {bundle_id!r}")
        return self.data_dir / f"{bundle_id}.json"

    def _meta_path(self, bundle_id: str) -> Path:
        return self._bundle_path(bundle_id).with_suffix(".meta.json")

    def _read_meta(self, bundle_id: str) -> Dict:
        path = self._meta_path(bundle_id)
        if not path.exists():
            return {}
        return json.loads(path.read_text())

    def _write_meta(self, bundle_id: str, meta: Dict) -> None:
        self._meta_path(bundle_id).write_text(json.dumps(meta))

    def store(self, bundle: Bundle) -> None:
        """Write a bundle to disk, replacing any previous copy."""
        self._bundle_path(bundle.bundle_id).write_text(json.dumps(bundle.content))
        logger.info("Stored bundle %s", bundle.bundle_id[:18])

    def get(self, bundle_id: str) -> Optional[Bundle]:
        """
        Load a bundle from disk.

        Returns:
            The bundle, or None if it is not held locally.
        """
        path = self._bundle_path(bundle_id)
        if not path.exists():
            return None
        return Bundle(bundle_id=bundle_id, content=json.loads(path.read_text()))

    def list_bundles(self) -> List[str]:
        """Ids of all bundles held locally."""
        return sorted(
            f.name[: -len(".json")]
            for f in self.data_dir.iterdir()
            if f.is_file()
            and f.name.endswith(".json")
            and not f.name.endswith(".meta.json")
        )

    async def download_bundle(self, bundle_id: str, shelterer_id: str) -> Bundle:
        """
        Fetch a bundle from the node currently sheltering it.

        Args:
            bundle_id: Id of the bundle to fetch.
            shelterer_id: Address of the sheltering node.

        Returns:
            The downloaded bundle, already written to disk.

        Raises:
            ValidationError: If the peer returns a different bundle.
            NotFoundError: If the peer does not have the bundle.
            httpx.HTTPError: On network failures.
        """
        node_url = await self.ledger.node_url(shelterer_id)
        content = await self.peer_client.get_json(node_url, f"/bundle/{bundle_id}")

        if not isinstance(content, dict) or content.get("bundleId") != bundle_id:
            raise ValidationError(
                f"Peer {shelterer_id} returned a different bundle than {bundle_id}"
            )

        bundle = Bundle(bundle_id=bundle_id, content=content)
        await asyncio.to_thread(self.store, bundle)
        return bundle

    async def update_sheltering_expiration_date(self, bundle_id: str) -> int:
        """
        Keep a bundle for the storage periods its uploader paid for.

        Returns:
            The new `hold_until` timestamp (unix seconds).
        """
        bundle = await asyncio.to_thread(self.get, bundle_id)
        if bundle is None:
            raise ValidationError(f"Bundle {bundle_id} is not stored locally")

        hold_until = int(time.time()) + bundle.storage_periods * STORAGE_PERIOD_DURATION
        meta = await asyncio.to_thread(self._read_meta, bundle_id)
        meta["hold_until"] = hold_until
        await asyncio.to_thread(self._write_meta, bundle_id, meta)
        logger.info("Sheltering %s until %d", bundle_id[:18], hold_until)
        return hold_until

    def _cleanup(self, now: float) -> List[str]:
        removed = []
        for bundle_id in self.list_bundles():
            hold_until = self._read_meta(bundle_id).get("hold_until")
            if hold_until is not None and hold_until > now:
                continue
            self._bundle_path(bundle_id).unlink(missing_ok=True)
            self._meta_path(bundle_id).unlink(missing_ok=True)
            removed.append(bundle_id)
        return removed

    async def cleanup_bundles(self, now: Optional[float] = None) -> List[str]:
        """
        Remove bundles the node is no longer sheltering.

        Returns:
            Ids of the removed bundles.
        """
        removed = await asyncio.to_thread(
            self._cleanup, time.time() if now is None else now
        )
        if removed:
            logger.info("Cleaned up %d bundles", len(removed))
        return removed

    def is_reachable(self) -> bool:
        """Check the data directory is usable."""
        return self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK)
