"""
main.py — Custody Node Entrypoint
====================================
Wires the ledger, storage and strategy together and runs the
challenge resolution worker until SIGINT/SIGTERM.
"""

import asyncio
import logging
import signal

from custody_node.api.app import create_app
from custody_node.api.server import HealthServer
from custody_node.config import settings
from custody_node.core.token_authenticator import TokenAuthenticator
from custody_node.services.bundle_store import BundleStore
from custody_node.services.challenges_repository import ChallengesRepository
from custody_node.services.identity import IdentityManager
from custody_node.services.ledger_client import LedgerClient
from custody_node.services.peer_client import PeerClient
from custody_node.services.worker_log import WorkerLogRepository
from custody_node.workers.challenge_worker import ChallengeResolutionWorker
from custody_node.workers.strategies import load_strategy

# ── Logging Configuration ─────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("custody-node")


def build_worker() -> ChallengeResolutionWorker:
    """Construct the worker and all of its collaborators from settings."""
    if not settings.NODE_PRIVATE_KEY:
        raise RuntimeError("NODE_PRIVATE_KEY must be set")

    ledger = LedgerClient(
        blockchain_url=settings.BLOCKCHAIN_URL,
        contract_addresses_file=settings.CONTRACT_ADDRESSES_FILE,
        private_key=settings.NODE_PRIVATE_KEY,
    )
    bundle_store = BundleStore(
        data_dir=settings.BUNDLE_DATA_DIR,
        ledger=ledger,
        peer_client=PeerClient(timeout=settings.PEER_TIMEOUT),
    )
    worker_log_repository = WorkerLogRepository(settings.WORKER_LOG_FILE)

    app = create_app(
        ledger=ledger,
        bundle_store=bundle_store,
        worker_log_repository=worker_log_repository,
        token_authenticator=TokenAuthenticator(IdentityManager()),
        admin_address=settings.ADMIN_ADDRESS or ledger.address,
    )

    return ChallengeResolutionWorker(
        ledger=ledger,
        bundle_store=bundle_store,
        worker_log_repository=worker_log_repository,
        challenges_repository=ChallengesRepository(ledger),
        strategy=load_strategy(
            settings.CHALLENGE_STRATEGY,
            interval=settings.WORKER_INTERVAL,
            probability=settings.RESOLUTION_PROBABILITY,
        ),
        gas_cost_threshold=settings.GAS_COST_THRESHOLD,
        health_server=HealthServer(app, settings.HOST, settings.PORT),
    )


async def serve() -> None:
    logger.info("Custody node starting on %s:%d", settings.HOST, settings.PORT)
    logger.info("Blockchain: %s", settings.BLOCKCHAIN_URL)
    logger.info("Strategy:   %s", settings.CHALLENGE_STRATEGY)
    logger.info("Gas floor:  %d wei", settings.GAS_COST_THRESHOLD)
    worker = build_worker()
    shutdown = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    loop_task = await worker.start()
    waiter = asyncio.create_task(shutdown.wait())
    await asyncio.wait({loop_task, waiter}, return_when=asyncio.FIRST_COMPLETED)

    logger.info("Shutting down, waiting for the current cycle to finish")
    await worker.stop()
    waiter.cancel()


def run() -> None:
    """Console script entrypoint."""
    asyncio.run(serve())


if __name__ == "__main__":
    run()
