"""
token_authenticator.py — Signed Bearer Tokens
================================================
Issues and verifies self-contained, time-boxed tokens bound to
an address. Nothing is stored server side: a token is valid for
as long as its signature checks out and `validUntil` has not
passed, and it cannot be revoked early.

Wire format:
    base64url(canonical_json({"signature": ..., "idData": {
        "createdBy": <address>, "validUntil": <unix ms>}}))
with the base64 padding stripped.
"""

import base64
import binascii
import json
import logging
import time
from typing import Any, Dict, Optional

from custody_node.core.errors import (
    AuthenticationError,
    ValidationError,
)
from custody_node.services.identity import IdentityManager

logger = logging.getLogger(__name__)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(token: str) -> bytes:
    padding = "=" * (-len(token) % 4)
    return base64.b64decode(token + padding, altchars=b"-_", validate=True)


def now_ms() -> int:
    """Current unix time in milliseconds."""
    return int(time.time() * 1000)


class TokenAuthenticator:
    """Generates and decodes address-bound bearer tokens."""

    def __init__(self, identity_manager: IdentityManager):
        self.identity_manager = identity_manager

    def generate_token(self, secret: str, valid_until: Optional[int]) -> str:
        """
        Create a token signed with `secret`, valid until `valid_until`.

        Args:
            secret: Hex-encoded private key of the token owner.
            valid_until: Expiry as a unix timestamp in milliseconds.

        Returns:
            Opaque URL-safe token string.

        Raises:
            ValidationError: If `valid_until` is missing or is not a
                positive integer.
        """
        if (
            valid_until is None
            or isinstance(valid_until, bool)
            or not isinstance(valid_until, int)
            or valid_until <= 0
        ):
            raise ValidationError(
                "Unix timestamp was not provided or has an invalid format"
            )

        address = self.identity_manager.address_from_secret(secret)
        id_data = {"createdBy": address, "validUntil": valid_until}
        payload = {
            "signature": self.identity_manager.sign(secret, id_data),
            "idData": id_data,
        }
        serialized = self.identity_manager.serialize_for_hashing(payload)
        return _b64url_encode(serialized.encode("utf-8"))

    def decode_token(self, token: str, now: Optional[int] = None) -> Dict[str, Any]:
        """
        Verify a token and return its payload.

        Args:
            token: Token produced by `generate_token`.
            now: Reference time in unix milliseconds; defaults to the
                current time.

        Returns:
            Dict with `signature` and `idData`.

        Raises:
            AuthenticationError: If the token cannot be decoded, is
                badly signed, has no expiry, or has expired.
        """
        decoded = self._decode(token)
        id_data = decoded["idData"]

        try:
            self.identity_manager.validate_signature(
                id_data.get("createdBy"), decoded["signature"], id_data
            )
        except ValidationError as e:
            raise AuthenticationError(f"Invalid token signature: {e}") from e

        valid_until = id_data.get("validUntil")
        if (
            isinstance(valid_until, bool)
            or not isinstance(valid_until, int)
            or valid_until <= 0
        ):
            raise AuthenticationError("Invalid token, no expiration date.")

        if now is None:
            now = now_ms()
        if valid_until < now:
            raise AuthenticationError("Token has expired.")

        return decoded

    def _decode(self, token: str) -> Dict[str, Any]:
        try:
            decoded = json.loads(_b64url_decode(token).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError, TypeError) as e:
            raise AuthenticationError("Unable to decode token.") from e

        if (
            not isinstance(decoded, dict)
            or not isinstance(decoded.get("idData"), dict)
            or "signature" not in decoded
        ):
            raise AuthenticationError("Unable to decode token.")
        return decoded
