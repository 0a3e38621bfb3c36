"""
config.py — Custody Node Configuration
=========================================
"""

import os


class Settings:
    """Custody node configuration from environment."""

    HOST: str = os.getenv("CUSTODY_NODE_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("CUSTODY_NODE_PORT", "9876"))
    BLOCKCHAIN_URL: str = os.getenv("BLOCKCHAIN_URL", "http://localhost:8545")
    CONTRACT_ADDRESSES_FILE: str = os.getenv(
        "CONTRACT_ADDRESSES_FILE", "./contract_addresses.json"
    )
    NODE_PRIVATE_KEY: str = os.getenv("NODE_PRIVATE_KEY", "")
    ADMIN_ADDRESS: str = os.getenv("ADMIN_ADDRESS", "")
    BUNDLE_DATA_DIR: str = os.getenv("BUNDLE_DATA_DIR", "./data/bundles")
    WORKER_LOG_FILE: str = os.getenv("WORKER_LOG_FILE", "./data/worker_log.jsonl")
    WORKER_INTERVAL: float = float(os.getenv("WORKER_INTERVAL", "5"))
    # 0.0235 ETH: enough for one resolution at the maximal gas price
    GAS_COST_THRESHOLD: int = int(
        os.getenv("GAS_COST_THRESHOLD", "23500000000000000")
    )
    CHALLENGE_STRATEGY: str = os.getenv("CHALLENGE_STRATEGY", "resolve_all")
    RESOLUTION_PROBABILITY: float = float(
        os.getenv("RESOLUTION_PROBABILITY", "0.5")
    )
    PEER_TIMEOUT: float = float(os.getenv("PEER_TIMEOUT", "10"))


settings = Settings()
