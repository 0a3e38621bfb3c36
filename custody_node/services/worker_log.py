"""
worker_log.py — Worker Log Persistence
=========================================
Append-only JSON-lines file holding the decisions the challenge
worker made, so operators can review them after the fact.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class WorkerLogRepository:
    """Stores worker log entries as one JSON document per line."""

    def __init__(self, log_file: str):
        self.path = Path(log_file)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _append(self, entry: Dict[str, Any]) -> None:
        with open(self.path, "a") as f:
            f.write(json.dumps(entry, default=str) + "\n")

    async def store_log(self, entry: Dict[str, Any]) -> None:
        """Persist one log entry."""
        await asyncio.to_thread(self._append, entry)

    def get_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """
        Most recent entries, newest first.

        Args:
            limit: Maximum number of entries to return.
        """
        if not self.path.exists():
            return []
        with open(self.path) as f:
            lines = [line for line in f if line.strip()]
        return [json.loads(line) for line in reversed(lines[-limit:])]
