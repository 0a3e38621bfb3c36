"""
test_identity.py — Unit Tests for Identity Manager
=====================================================
"""

import pytest

from custody_node.core.errors import ValidationError
from custody_node.services.identity import IdentityManager

SECRET = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class TestIdentityManager:
    """Tests for address derivation and signatures."""

    def setup_method(self):
        self.identity = IdentityManager()

    def test_address_from_secret(self):
        """Hardhat account #0 key maps to its well-known address."""
        assert self.identity.address_from_secret(SECRET) == ADDRESS

    def test_serialization_is_canonical(self):
        """Key order does not change the serialized form."""
        a = self.identity.serialize_for_hashing({"b": 1, "a": {"d": 2, "c": 3}})
        b = self.identity.serialize_for_hashing({"a": {"c": 3, "d": 2}, "b": 1})
        assert a == b == '{"a":{"c":3,"d":2},"b":1}'

    def test_valid_signature(self):
        """A signature verifies against the signer's address."""
        data = {"hello": "world"}
        signature = self.identity.sign(SECRET, data)
        self.identity.validate_signature(ADDRESS, signature, data)

    def test_address_case_insensitive(self):
        """Lowercase addresses are accepted."""
        data = {"x": 1}
        signature = self.identity.sign(SECRET, data)
        self.identity.validate_signature(ADDRESS.lower(), signature, data)

    def test_wrong_address(self):
        """Signature does not verify for another address."""
        data = {"x": 1}
        signature = self.identity.sign(SECRET, data)
        with pytest.raises(ValidationError, match="doesn't match"):
            self.identity.validate_signature(OTHER_ADDRESS, signature, data)

    def test_malformed_signature(self):
        """Garbage signatures are a validation error."""
        with pytest.raises(ValidationError):
            self.identity.validate_signature(ADDRESS, "0x1234", {"x": 1})
