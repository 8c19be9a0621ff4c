"""Simulated collaborators for dry-run mode and tests.

Nothing leaves the process. Order fills and withdrawal confirmations can be
delayed by a number of polls so the engine's retry path gets exercised.
"""

import json
import logging
import secrets
from typing import Optional

from swapsolver.engine.models import SignedIntent
from swapsolver.ports.base import (
    ExchangePort,
    IntentPort,
    IntentResult,
    PermanentPortError,
    VaultPort,
)

logger = logging.getLogger(__name__)


class DryRunVault(VaultPort):
    """In-memory vault that lends from a fixed pool."""

    def __init__(self, liquidity: Optional[int] = None):
        """Initialize the simulated vault.

        Args:
            liquidity: Pool size in base units (None = unlimited)
        """
        self.liquidity = liquidity
        self.intents: list[dict] = []
        self.repaid: dict[str, int] = {}

    async def borrow(self, deposit_hash: str, amount: int, memo: str) -> bool:
        if amount <= 0:
            raise PermanentPortError(f"Invalid borrow amount {amount}", port="vault")
        if self.liquidity is not None:
            if amount > self.liquidity:
                raise PermanentPortError(
                    f"Insufficient liquidity: requested {amount}, available {self.liquidity}",
                    port="vault",
                )
            self.liquidity -= amount

        self.intents.append({"deposit_hash": deposit_hash, "amount": amount, "memo": memo})
        logger.info(f"[SIMULATED] Borrowed {amount} for {deposit_hash} ({memo})")
        return True

    async def repay(self, intent_index: str, amount: int) -> bool:
        index = int(intent_index)
        if index < 0 or index >= len(self.intents):
            raise PermanentPortError(f"Unknown intent index {intent_index}", port="vault")
        if self.liquidity is not None:
            self.liquidity += amount
        self.repaid[intent_index] = self.repaid.get(intent_index, 0) + amount
        logger.info(f"[SIMULATED] Repaid {amount} for intent {intent_index}")
        return True

    async def query_intent_index(self, deposit_hash: str) -> Optional[str]:
        for index, intent in enumerate(self.intents):
            if intent["deposit_hash"] == deposit_hash:
                return str(index)
        return None


class DryRunExchange(ExchangePort):
    """Simulated exchange with configurable fill and confirmation latency."""

    def __init__(self, fill_after_polls: int = 0, confirm_after_polls: int = 0):
        """Initialize the simulated exchange.

        Args:
            fill_after_polls: Status polls reporting "not filled" before an order fills
            confirm_after_polls: Polls reporting "pending" before a withdrawal confirms
        """
        self.fill_after_polls = fill_after_polls
        self.confirm_after_polls = confirm_after_polls
        self.deposits: dict[str, dict] = {}
        self.orders: dict[str, dict] = {}
        self.withdrawals: dict[str, dict] = {}

    @property
    def name(self) -> str:
        return "dry_run"

    async def deposit(self, asset: str, amount: int) -> str:
        reference = f"sim_dep_{secrets.token_hex(8)}"
        self.deposits[reference] = {"asset": asset, "amount": amount}
        logger.info(f"[SIMULATED] Deposit of {amount} {asset} -> {reference}")
        return reference

    async def swap(self, token_in: str, token_out: str, amount: int) -> str:
        if amount <= 0:
            raise PermanentPortError(f"Invalid swap amount {amount}", port=self.name)
        order_ref = f"sim_ord_{secrets.token_hex(8)}"
        self.orders[order_ref] = {
            "token_in": token_in,
            "token_out": token_out,
            "amount": amount,
            "polls": 0,
        }
        logger.info(f"[SIMULATED] Swap order {order_ref}: {amount} {token_in} -> {token_out}")
        return order_ref

    async def swap_status(self, order_ref: str) -> bool:
        order = self.orders.get(order_ref)
        if order is None:
            raise PermanentPortError(f"Unknown order {order_ref}", port=self.name)
        order["polls"] += 1
        return order["polls"] > self.fill_after_polls

    async def withdraw(self, asset: str, amount: int, destination: str) -> str:
        reference = f"sim_wd_{secrets.token_hex(8)}"
        self.withdrawals[reference] = {
            "asset": asset,
            "amount": amount,
            "destination": destination,
            "polls": 0,
        }
        logger.info(f"[SIMULATED] Withdrawal of {amount} {asset} to {destination or '(default)'}")
        return reference

    async def withdrawal_confirmed(self, reference: str) -> bool:
        withdrawal = self.withdrawals.get(reference)
        if withdrawal is None:
            raise PermanentPortError(f"Unknown withdrawal {reference}", port=self.name)
        withdrawal["polls"] += 1
        return withdrawal["polls"] > self.confirm_after_polls


class DryRunIntentRelay(IntentPort):
    """Accepts any well-formed erc191 intent."""

    def __init__(self):
        self.executed: list[SignedIntent] = []

    async def execute(self, signed_intent: SignedIntent) -> IntentResult:
        if signed_intent.standard != "erc191":
            raise PermanentPortError(
                f"Unsupported signing standard {signed_intent.standard}", port="intents"
            )
        try:
            json.loads(signed_intent.payload)
        except ValueError:
            raise PermanentPortError("Invalid user intent payload", port="intents")

        self.executed.append(signed_intent)
        intent_hash = f"sim_intent_{secrets.token_hex(16)}"
        logger.info(f"[SIMULATED] Executed user intent {intent_hash}")
        return IntentResult(success=True, intent_hash=intent_hash, status="SETTLED")
