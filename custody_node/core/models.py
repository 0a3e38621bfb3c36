"""
models.py — Core Data Types
==============================
Plain data carried between the challenge worker and its
collaborators.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Challenge:
    """An open custody dispute, as reported by the ledger."""

    shelterer_id: str
    bundle_id: str
    challenge_id: str
    bundle_number: Optional[int] = None


@dataclass
class Bundle:
    """A bundle held locally by the bundle store."""

    bundle_id: str
    content: Dict[str, Any] = field(default_factory=dict)

    @property
    def storage_periods(self) -> int:
        """Number of storage periods the uploader paid for."""
        return int(self.content.get("storagePeriods", 1))


@dataclass
class EngineState:
    """Mutable state owned by a single challenge worker."""

    interval: float
    is_out_of_funds: bool = False
    running: bool = False


class ChallengeOutcome(Enum):
    """Result of one attempt at a challenge."""

    RESOLVED = "resolved"
    SKIPPED_FETCH = "skipped_fetch"
    DOWNLOAD_FAILED = "download_failed"
    SKIPPED_RESOLUTION = "skipped_resolution"
    RESOLUTION_FAILED = "resolution_failed"
    STRATEGY_FAILED = "strategy_failed"

    @property
    def resolved(self) -> bool:
        return self is ChallengeOutcome.RESOLVED
