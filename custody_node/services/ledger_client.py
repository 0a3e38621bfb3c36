"""
ledger_client.py — Ethereum Ledger Client
============================================
Web3.py client for the contracts the custody node talks to:
Challenges (open/resolve custody disputes) and Roles (peer URL
lookup).

Reads contract addresses from a shared JSON config file written
by the contract deployment script. Web3 calls block, so the async
helpers run them in a worker thread.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict, Optional

from web3 import Web3

logger = logging.getLogger(__name__)

# ── ABI Definitions ──────────────────────────────────────
# Minimal ABIs — only the functions and events we use

CHALLENGES_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "sheltererId", "type": "address"},
            {"indexed": False, "name": "bundleId", "type": "bytes32"},
            {"indexed": False, "name": "challengeId", "type": "bytes32"},
            {"indexed": False, "name": "count", "type": "uint256"},
        ],
        "name": "ChallengeCreated",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "sheltererId", "type": "address"},
            {"indexed": False, "name": "bundleId", "type": "bytes32"},
            {"indexed": False, "name": "challengeId", "type": "bytes32"},
            {"indexed": False, "name": "resolverId", "type": "address"},
        ],
        "name": "ChallengeResolved",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": False, "name": "sheltererId", "type": "address"},
            {"indexed": False, "name": "bundleId", "type": "bytes32"},
            {"indexed": False, "name": "challengeId", "type": "bytes32"},
            {"indexed": False, "name": "penalty", "type": "uint256"},
        ],
        "name": "ChallengeTimeout",
        "type": "event",
    },
    {
        "inputs": [{"name": "challengeId", "type": "bytes32"}],
        "name": "challengeIsInProgress",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "resolver", "type": "address"},
            {"name": "challengeId", "type": "bytes32"},
        ],
        "name": "canResolve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "challengeId", "type": "bytes32"}],
        "name": "resolve",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

ROLES_ABI = [
    {
        "inputs": [{"name": "node", "type": "address"}],
        "name": "nodeUrl",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def to_bytes32(value: str) -> bytes:
    """Convert a hex identifier to its 32-byte on-chain form."""
    return bytes.fromhex(value.replace("0x", "").zfill(64))


def from_bytes32(value: bytes) -> str:
    """Render 32 on-chain bytes as a 0x-prefixed hex identifier."""
    return "0x" + bytes(value).hex()


class LedgerClient:
    """
    Client for the node's operating account and the Challenges
    and Roles contracts.
    """

    def __init__(
        self,
        blockchain_url: str,
        contract_addresses_file: str,
        private_key: str,
        gas_limit: int = 2000000,
    ):
        """
        Initialize the ledger client.

        Args:
            blockchain_url: URL of the Ethereum RPC endpoint.
            contract_addresses_file: Path to JSON file with deployed addresses.
            private_key: Private key of the node's operating account.
            gas_limit: Gas limit attached to every transaction.
        """
        self.w3 = Web3(Web3.HTTPProvider(blockchain_url))
        self._private_key = private_key
        self._account = self.w3.eth.account.from_key(private_key)
        self._addresses_file = contract_addresses_file
        self._gas_limit = gas_limit

        # Contract instances (lazy-loaded)
        self._challenges = None
        self._roles = None
        self._addresses: Optional[Dict] = None

        logger.info(
            "LedgerClient initialized (rpc=%s, account=%s)",
            blockchain_url,
            self._account.address,
        )

    @property
    def address(self) -> str:
        """Address of the node's operating account."""
        return self._account.address

    def _load_addresses(self) -> Dict:
        """Load contract addresses from the shared JSON config."""
        if self._addresses is None:
            path = Path(self._addresses_file)
            if not path.exists():
                raise FileNotFoundError(
                    f"Contract addresses file not found: {self._addresses_file}. "
                    "Ensure the contracts have been deployed."
                )
            with open(path) as f:
                self._addresses = json.load(f)
            logger.info("Loaded contract addresses from %s", path)
        return self._addresses

    def _contract(self, name: str, abi: list):
        addresses = self._load_addresses()
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(addresses[name]),
            abi=abi,
        )

    @property
    def challenges(self):
        """Get the Challenges contract instance."""
        if self._challenges is None:
            self._challenges = self._contract("Challenges", CHALLENGES_ABI)
        return self._challenges

    @property
    def roles(self):
        """Get the Roles contract instance."""
        if self._roles is None:
            self._roles = self._contract("Roles", ROLES_ABI)
        return self._roles

    def send_transaction(self, func):
        """Build, sign, and send a contract transaction."""
        tx = func.build_transaction(
            {
                "from": self._account.address,
                "nonce": self.w3.eth.get_transaction_count(
                    self._account.address
                ),
                "gas": self._gas_limit,
                "gasPrice": self.w3.eth.gas_price,
            }
        )
        signed = self.w3.eth.account.sign_transaction(tx, self._private_key)
        tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        if receipt.status != 1:
            raise RuntimeError(
                f"Transaction {from_bytes32(receipt.transactionHash)} reverted"
            )
        logger.info("Transaction mined: %s", from_bytes32(receipt.transactionHash))
        return receipt

    # ── Async helpers ────────────────────────────────────

    async def get_balance(self, address: str) -> int:
        """Balance of `address` in wei."""
        return await asyncio.to_thread(
            self.w3.eth.get_balance, Web3.to_checksum_address(address)
        )

    async def node_url(self, node_address: str) -> str:
        """Public URL a node registered in the Roles contract."""
        func = self.roles.functions.nodeUrl(
            Web3.to_checksum_address(node_address)
        )
        return await asyncio.to_thread(func.call)

    def is_connected(self) -> bool:
        """Check if connected to the blockchain."""
        try:
            return self.w3.is_connected()
        except Exception:
            return False
