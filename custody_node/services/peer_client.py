"""
peer_client.py — Peer Node HTTP Client
=========================================
Fetches JSON documents from other nodes in the network and maps
their status codes onto the node's error taxonomy.
"""

import logging
from typing import Any

import httpx

from custody_node.core.status import validate_incoming_status_code

logger = logging.getLogger(__name__)


class PeerClient:
    """HTTP client for talking to other storage nodes."""

    def __init__(self, timeout: float = 10):
        self.timeout = timeout

    async def get_json(self, base_url: str, path: str) -> Any:
        """
        GET `path` on a peer and return the decoded JSON body.

        Raises:
            ValidationError, AuthenticationError, PermissionDeniedError,
            NotFoundError, UnexpectedStatusError: on non-200 responses.
            httpx.HTTPError: on transport failures.
        """
        url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url)
        validate_incoming_status_code(response.status_code, url)
        logger.debug("GET %s -> %d bytes", url, len(response.content))
        return response.json()
