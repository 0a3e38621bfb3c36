"""
challenge_worker.py — Challenge Resolution Worker
====================================================
Periodically competes for open custody challenges.

One cycle:
    1. Skip everything if the account cannot pay for gas
    2. Fetch the ongoing challenges from the ledger
    3. Try them in order until one is resolved:
         strategy says fetch? → download bundle →
         strategy says resolve? → resolve on-chain + extend sheltering →
         strategy hook
    4. Clean up bundles that are no longer sheltered

A failed attempt only affects its own challenge; other nodes race
for the same challenges, so losing one is an ordinary outcome.
"""

import logging
import math
import time
from dataclasses import asdict
from typing import Any, Optional

from custody_node.core.models import Challenge, ChallengeOutcome
from custody_node.workers.fund_gate import DEFAULT_GAS_COST_THRESHOLD, FundGate
from custody_node.workers.periodic_worker import PeriodicWorker
from custody_node.workers.strategies import ChallengeResolutionStrategy

logger = logging.getLogger(__name__)


def _is_valid_interval(interval: Any) -> bool:
    return (
        not isinstance(interval, bool)
        and isinstance(interval, (int, float))
        and math.isfinite(interval)
        and interval > 0
    )


def _check_strategy(strategy: Any) -> None:
    if not isinstance(strategy, ChallengeResolutionStrategy):
        raise TypeError(
            "A valid strategy must be provided, got "
            f"{type(strategy).__name__}"
        )
    interval = strategy.worker_interval
    if not _is_valid_interval(interval):
        raise ValueError(
            f"Strategy worker_interval must be a positive number, got {interval!r}"
        )


class ChallengeResolutionWorker(PeriodicWorker):
    """Periodic worker resolving custody challenges for this node."""

    def __init__(
        self,
        ledger,
        bundle_store,
        worker_log_repository,
        challenges_repository,
        strategy: ChallengeResolutionStrategy,
        gas_cost_threshold: int = DEFAULT_GAS_COST_THRESHOLD,
        health_server=None,
    ):
        """
        Args:
            ledger: Provides `address` and `get_balance(address)`.
            bundle_store: Downloads, shelters and cleans up bundles.
            worker_log_repository: Persists worker decisions.
            challenges_repository: Lists and resolves challenges.
            strategy: Policy deciding which challenges to pursue.
            gas_cost_threshold: Minimum balance in wei for a cycle to run.
            health_server: Liveness endpoint started and stopped with
                the loop; optional.

        Raises:
            TypeError: If `strategy` is not a ChallengeResolutionStrategy.
            ValueError: If the strategy's interval is not positive.
        """
        _check_strategy(strategy)
        super().__init__(strategy.worker_interval)
        self.ledger = ledger
        self.bundle_store = bundle_store
        self.worker_log_repository = worker_log_repository
        self.challenges_repository = challenges_repository
        self.strategy = strategy
        self.health_server = health_server
        self.fund_gate = FundGate(
            get_balance=ledger.get_balance,
            address=ledger.address,
            state=self.state,
            threshold=gas_cost_threshold,
            on_transition=self.add_log,
        )

    @property
    def is_out_of_funds(self) -> bool:
        return self.state.is_out_of_funds

    def current_interval(self) -> float:
        interval = self.strategy.worker_interval
        if _is_valid_interval(interval):
            self.state.interval = interval
        else:
            logger.warning(
                "Strategy returned invalid worker_interval %r, keeping %ss",
                interval,
                self.state.interval,
            )
        return self.state.interval

    async def is_enough_funds_to_pay_for_gas(self) -> bool:
        return await self.fund_gate.is_enough_funds_to_pay_for_gas()

    async def add_log(self, message: str, **fields: Any) -> None:
        """Log a worker decision and persist it."""
        logger.info("%s %s", message, fields)
        entry = {"timestamp": int(time.time()), "message": message, **fields}
        try:
            await self.worker_log_repository.store_log(entry)
        except Exception as e:
            logger.warning("Failed to store worker log entry: %s", e)

    async def try_to_download(self, challenge: Challenge):
        await self.add_log("Trying to fetch the bundle", **asdict(challenge))
        return await self.bundle_store.download_bundle(
            challenge.bundle_id, challenge.shelterer_id
        )

    async def try_to_resolve(self, bundle, challenge: Challenge) -> None:
        await self.challenges_repository.resolve_challenge(challenge.challenge_id)
        await self.bundle_store.update_sheltering_expiration_date(bundle.bundle_id)
        await self.add_log("Challenge resolved, bundle is ours", bundle_id=bundle.bundle_id)

    async def try_with_challenge(self, challenge: Challenge) -> ChallengeOutcome:
        """
        Attempt a single challenge. Never raises.

        Returns:
            What happened; only RESOLVED means the node won it.
        """
        fields = asdict(challenge)

        try:
            if not await self.strategy.should_fetch_bundle(challenge):
                await self.add_log("Decided not to download bundle", **fields)
                return ChallengeOutcome.SKIPPED_FETCH
        except Exception as e:
            await self.add_log(f"Strategy failed before download: {e}", **fields)
            return ChallengeOutcome.STRATEGY_FAILED

        try:
            bundle = await self.try_to_download(challenge)
        except Exception as e:
            await self.add_log(f"Failed to download bundle: {e}", **fields)
            return ChallengeOutcome.DOWNLOAD_FAILED

        try:
            if not await self.strategy.should_resolve_challenge(bundle):
                await self.add_log("Challenge resolution cancelled", **fields)
                return ChallengeOutcome.SKIPPED_RESOLUTION
        except Exception as e:
            await self.add_log(f"Strategy failed before resolution: {e}", **fields)
            return ChallengeOutcome.STRATEGY_FAILED

        try:
            await self.try_to_resolve(bundle, challenge)
        except Exception as e:
            await self.add_log(f"Failed to resolve challenge: {e}", **fields)
            return ChallengeOutcome.RESOLUTION_FAILED

        try:
            await self.strategy.after_challenge_resolution(bundle)
        except Exception as e:
            # The challenge is already ours on-chain
            await self.add_log(f"Post-resolution hook failed: {e}", **fields)
        return ChallengeOutcome.RESOLVED

    async def periodic_work(self) -> Optional[Challenge]:
        """
        Run one polling cycle.

        Returns:
            The challenge resolved during this cycle, if any.
        """
        if not await self.is_enough_funds_to_pay_for_gas():
            return None

        resolved = None
        try:
            challenges = await self.challenges_repository.ongoing_challenges()
            logger.debug("%d ongoing challenges", len(challenges))
            for challenge in challenges:
                outcome = await self.try_with_challenge(challenge)
                if outcome is ChallengeOutcome.RESOLVED:
                    resolved = challenge
                    break
        finally:
            await self.bundle_store.cleanup_bundles()
        return resolved

    async def before_work_loop(self) -> None:
        if self.health_server is not None:
            await self.health_server.start()
        logger.info(
            "Challenge worker started (account=%s, interval=%ss)",
            self.ledger.address,
            self.interval,
        )

    async def after_work_loop(self) -> None:
        if self.health_server is not None:
            await self.health_server.stop()
        logger.info("Challenge worker stopped")
