"""
challenges_repository.py — Ongoing Challenge Index
=====================================================
Tracks open challenges by replaying Challenges contract events.

Each call to `ongoing_challenges` scans the blocks mined since the
previous call, applies created/resolved/timed-out events in chain
order, and returns the still-open challenges in the order they were
created.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import List

from custody_node.core.models import Challenge
from custody_node.services.ledger_client import (
    LedgerClient,
    from_bytes32,
    to_bytes32,
)

logger = logging.getLogger(__name__)


class ChallengesRepository:
    """Event-sourced view of the challenges currently in progress."""

    def __init__(self, ledger: LedgerClient, start_block: int = 0):
        """
        Args:
            ledger: Client used for event queries and transactions.
            start_block: First block to scan for challenge events.
        """
        self.ledger = ledger
        self._next_block = start_block
        self._active: "OrderedDict[str, Challenge]" = OrderedDict()

    def _fetch_events(self, from_block: int, to_block: int) -> list:
        events = self.ledger.challenges.events
        collected = []
        for kind in ("ChallengeCreated", "ChallengeResolved", "ChallengeTimeout"):
            for event in getattr(events, kind).get_logs(
                from_block=from_block, to_block=to_block
            ):
                collected.append((event["blockNumber"], event["logIndex"], kind, event))
        collected.sort(key=lambda item: (item[0], item[1]))
        return collected

    def _apply(self, kind: str, event) -> None:
        args = event["args"]
        challenge_id = from_bytes32(args["challengeId"])
        if kind == "ChallengeCreated":
            self._active[challenge_id] = Challenge(
                shelterer_id=args["sheltererId"],
                bundle_id=from_bytes32(args["bundleId"]),
                challenge_id=challenge_id,
            )
        else:
            self._active.pop(challenge_id, None)

    def _sync(self) -> None:
        latest = self.ledger.w3.eth.block_number
        if latest < self._next_block:
            return
        events = self._fetch_events(self._next_block, latest)
        for _, _, kind, event in events:
            self._apply(kind, event)
        logger.debug(
            "Scanned blocks %d-%d: %d challenge events, %d open",
            self._next_block,
            latest,
            len(events),
            len(self._active),
        )
        self._next_block = latest + 1

    def _still_in_progress(self) -> List[Challenge]:
        in_progress = self.ledger.challenges.functions.challengeIsInProgress
        ongoing = []
        for challenge_id, challenge in list(self._active.items()):
            if in_progress(to_bytes32(challenge_id)).call():
                ongoing.append(challenge)
            else:
                del self._active[challenge_id]
        return ongoing

    async def ongoing_challenges(self) -> List[Challenge]:
        """Open challenges, oldest first."""
        await asyncio.to_thread(self._sync)
        return await asyncio.to_thread(self._still_in_progress)

    def _resolve(self, challenge_id: str) -> str:
        functions = self.ledger.challenges.functions
        challenge_bytes = to_bytes32(challenge_id)
        if not functions.canResolve(self.ledger.address, challenge_bytes).call():
            raise RuntimeError(
                f"Unable to resolve challenge {challenge_id}: boundary check failed"
            )
        receipt = self.ledger.send_transaction(functions.resolve(challenge_bytes))
        self._active.pop(challenge_id, None)
        return from_bytes32(receipt.transactionHash)

    async def resolve_challenge(self, challenge_id: str) -> str:
        """
        Submit the resolution transaction for a challenge.

        Returns:
            Transaction hash.

        Raises:
            RuntimeError: If the contract refuses the resolution or
                the transaction reverts.
        """
        return await asyncio.to_thread(self._resolve, challenge_id)
