"""
strategies.py — Challenge Resolution Strategies
==================================================
Policies deciding which challenges the node competes for.

Every strategy implements `ChallengeResolutionStrategy`; the
challenge worker refuses anything else at construction time.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, Dict

from custody_node.core.models import Bundle, Challenge

logger = logging.getLogger(__name__)


class ChallengeResolutionStrategy(ABC):
    """Capability contract consumed by the challenge worker."""

    @property
    def worker_interval(self) -> float:
        """Seconds to wait between two polling cycles."""
        return 5

    @abstractmethod
    async def should_fetch_bundle(self, challenge: Challenge) -> bool:
        """Whether to download the bundle a challenge is about."""

    @abstractmethod
    async def should_resolve_challenge(self, bundle: Bundle) -> bool:
        """Whether to submit a resolution for a downloaded bundle."""

    async def after_challenge_resolution(self, bundle: Bundle) -> None:
        """Called once a resolution for `bundle` has been accepted."""


class ResolveAllStrategy(ChallengeResolutionStrategy):
    """Competes for every challenge."""

    def __init__(self, interval: float = 5):
        self._interval = interval

    @property
    def worker_interval(self) -> float:
        return self._interval

    async def should_fetch_bundle(self, challenge: Challenge) -> bool:
        return True

    async def should_resolve_challenge(self, bundle: Bundle) -> bool:
        return True


class ResolveByProbabilityStrategy(ResolveAllStrategy):
    """
    Competes for a random share of challenges.

    Useful when several nodes run under the same operator and
    should not all race for the same challenge.
    """

    def __init__(
        self,
        probability: float,
        interval: float = 5,
        rng: Callable[[], float] = random.random,
    ):
        super().__init__(interval)
        if not 0 <= probability <= 1:
            raise ValueError(f"Probability must be within [0, 1], got {probability}")
        self.probability = probability
        self._rng = rng

    async def should_fetch_bundle(self, challenge: Challenge) -> bool:
        return self._rng() < self.probability


_STRATEGIES: Dict[str, Callable[..., ChallengeResolutionStrategy]] = {
    "resolve_all": lambda interval, probability: ResolveAllStrategy(interval),
    "resolve_by_probability": lambda interval, probability: ResolveByProbabilityStrategy(
        probability, interval
    ),
}


def load_strategy(
    name: str, interval: float = 5, probability: float = 0.5
) -> ChallengeResolutionStrategy:
    """
    Build a strategy by its configured name.

    Raises:
        ValueError: If no strategy is registered under `name`.
    """
    try:
        factory = _STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown challenge strategy {name!r}; "
            f"expected one of {sorted(_STRATEGIES)}"
        ) from None
    logger.info("Using challenge strategy %s", name)
    return factory(interval, probability)
