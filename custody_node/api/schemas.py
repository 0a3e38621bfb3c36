"""
schemas.py — Pydantic Response Models
========================================
Data models for the custody node REST API.
"""

from typing import Any, Dict, List

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Liveness check response."""

    status: str
    service: str
    blockchain_connected: bool
    storage_reachable: bool


class WorkerLogsResponse(BaseModel):
    """Recent decisions taken by the challenge worker."""

    total: int
    logs: List[Dict[str, Any]]
