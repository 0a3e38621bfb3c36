"""
fund_gate.py — Gas Funds Check
=================================
Decides whether the operating account can afford to transact.
The out-of-funds flag lives in the worker's `EngineState` and is
logged only when it flips.
"""

import logging
from typing import Awaitable, Callable, Optional

from custody_node.core.models import EngineState

logger = logging.getLogger(__name__)

# Default minimum balance in wei
DEFAULT_GAS_COST_THRESHOLD = 23500000000000000


class FundGate:
    """Compares the account balance to a fixed gas cost threshold."""

    def __init__(
        self,
        get_balance: Callable[[str], Awaitable[int]],
        address: str,
        state: EngineState,
        threshold: int = DEFAULT_GAS_COST_THRESHOLD,
        on_transition: Optional[Callable[[str], Awaitable[None]]] = None,
    ):
        """
        Args:
            get_balance: Coroutine returning the balance of an address.
            address: The node's operating account.
            state: Worker state holding the sticky out-of-funds flag.
            threshold: Minimum balance in wei.
            on_transition: Coroutine receiving a message each time the
                flag flips. Defaults to the module logger.
        """
        self.get_balance = get_balance
        self.address = address
        self.state = state
        self.threshold = threshold
        self.on_transition = on_transition

    async def _report(self, message: str) -> None:
        if self.on_transition is None:
            logger.info(message)
        else:
            await self.on_transition(message)

    async def is_enough_funds_to_pay_for_gas(self) -> bool:
        balance = int(await self.get_balance(self.address))
        enough = balance >= self.threshold

        if not enough and not self.state.is_out_of_funds:
            self.state.is_out_of_funds = True
            await self._report(
                f"Not enough funds to pay for gas: balance {balance} wei "
                f"is below {self.threshold} wei"
            )
        elif enough and self.state.is_out_of_funds:
            self.state.is_out_of_funds = False
            await self._report(f"Funds replenished: balance {balance} wei")

        return enough
