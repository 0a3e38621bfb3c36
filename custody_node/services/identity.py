"""
identity.py — Node Identity & Signatures
===========================================
Wraps eth_account to derive addresses from secret keys and to
sign and verify arbitrary JSON-serializable payloads.

Payloads are signed over their canonical serialization (sorted
keys, compact separators) so any party can rebuild the exact
signed bytes from the decoded data.
"""

import json
import logging
from typing import Any

from eth_account import Account
from eth_account.messages import encode_defunct

from custody_node.core.errors import ValidationError

logger = logging.getLogger(__name__)


class IdentityManager:
    """Address derivation, signing and signature checks."""

    def address_from_secret(self, secret: str) -> str:
        """Return the checksummed address controlled by a private key."""
        return Account.from_key(secret).address

    def serialize_for_hashing(self, data: Any) -> str:
        """Deterministic JSON rendering of a payload."""
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    def sign(self, secret: str, data: Any) -> str:
        """
        Sign a payload with the given private key.

        Args:
            secret: Hex-encoded private key.
            data: JSON-serializable payload.

        Returns:
            0x-prefixed hex signature.
        """
        message = encode_defunct(text=self.serialize_for_hashing(data))
        signed = Account.sign_message(message, private_key=secret)
        return "0x" + bytes(signed.signature).hex()

    def validate_signature(self, address: str, signature: str, data: Any) -> None:
        """
        Check that `signature` over `data` was produced by `address`.

        Raises:
            ValidationError: If the signature is malformed or was
                produced by another key.
        """
        message = encode_defunct(text=self.serialize_for_hashing(data))
        try:
            signer = Account.recover_message(message, signature=signature)
        except Exception as e:
            raise ValidationError(f"Malformed signature: {e}") from e

        if not isinstance(address, str) or signer.lower() != address.lower():
            logger.debug("Signature by %s does not match %s", signer, address)
            raise ValidationError("Signature doesn't match")
