"""
routes.py — Custody Node API Endpoints
=========================================
Endpoints served while the challenge worker runs.

Endpoints:
    GET /health              — Liveness check
    GET /bundle/{bundle_id}  — Serve a sheltered bundle to peers
    GET /worker-logs         — Worker decisions (admin token required)
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from custody_node.api.schemas import HealthResponse, WorkerLogsResponse
from custody_node.core.errors import (
    AuthenticationError,
    NotFoundError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)

router = APIRouter()

TOKEN_SCHEME = "AMB_TOKEN"


def require_admin_token(request: Request) -> dict:
    """
    Dependency accepting only tokens created by the admin address.

    Expects `Authorization: AMB_TOKEN <token>`.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme != TOKEN_SCHEME or not token:
        raise AuthenticationError(f"Expected {TOKEN_SCHEME} authorization header")

    state = request.app.state
    id_data = state.token_authenticator.decode_token(token.strip())["idData"]
    if id_data["createdBy"].lower() != state.admin_address.lower():
        raise PermissionDeniedError(
            f"Address {id_data['createdBy']} is not allowed to read worker logs"
        )
    return id_data


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request, response: Response):
    """Report whether the ledger and local storage are usable."""
    state = request.app.state
    blockchain_connected = await asyncio.to_thread(state.ledger.is_connected)
    storage_reachable = await asyncio.to_thread(state.bundle_store.is_reachable)
    healthy = blockchain_connected and storage_reachable
    if not healthy:
        response.status_code = 503

    return HealthResponse(
        status="healthy" if healthy else "unhealthy",
        service="custody-node",
        blockchain_connected=blockchain_connected,
        storage_reachable=storage_reachable,
    )


@router.get("/bundle/{bundle_id}")
async def get_bundle(bundle_id: str, request: Request):
    """Return a bundle this node shelters."""
    bundle = await asyncio.to_thread(request.app.state.bundle_store.get, bundle_id)
    if bundle is None:
        raise NotFoundError(f"No bundle with id = {bundle_id} found")
    return bundle.content


@router.get("/worker-logs", response_model=WorkerLogsResponse)
async def worker_logs(
    request: Request,
    limit: int = Query(100, ge=1, le=1000),
    id_data: dict = Depends(require_admin_token),
):
    """Most recent worker log entries, newest first."""
    logs = await asyncio.to_thread(
        request.app.state.worker_log_repository.get_logs, limit
    )
    logger.debug("Served %d worker logs to %s", len(logs), id_data["createdBy"])
    return WorkerLogsResponse(total=len(logs), logs=logs)
