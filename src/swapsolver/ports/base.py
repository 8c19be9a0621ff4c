"""Collaborator port interfaces.

State handlers reach the outside world only through these ports:
- VaultPort: borrow liquidity from and repay it to the vault contract
- ExchangePort: deposit, swap and withdraw on the centralized exchange
- IntentPort: execute the user's signed intent on the intents relay

Adapters decide how their failures are classified by raising either
TransientPortError (retry later) or PermanentPortError (give up now).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from swapsolver.engine.models import SignedIntent

logger = logging.getLogger(__name__)


class PortError(Exception):
    """Base class for collaborator failures."""

    def __init__(self, message: str, port: str = ""):
        self.port = port
        super().__init__(f"{port}: {message}" if port else message)


class TransientPortError(PortError):
    """Network error, rate limit, or a status that is not final yet."""

    pass


class PermanentPortError(PortError):
    """Invalid parameters, insufficient liquidity, or a rejected transaction."""

    pass


class PortConfigurationError(RuntimeError):
    """Raised when no adapter is available for a required port."""

    pass


@dataclass
class IntentResult:
    """Result of executing a signed intent."""

    success: bool
    intent_hash: Optional[str] = None
    status: str = ""
    details: dict = field(default_factory=dict)


class VaultPort(ABC):
    """Vault contract calls used by the solver."""

    @abstractmethod
    async def borrow(self, deposit_hash: str, amount: int, memo: str) -> bool:
        """Create an intent on the vault and borrow ``amount`` of liquidity.

        Args:
            deposit_hash: Hash identifying the user's deposit
            amount: Amount to borrow in base units
            memo: Free-form intent data recorded on the contract

        Returns:
            True if the contract accepted the borrow
        """
        pass

    @abstractmethod
    async def repay(self, intent_index: str, amount: int) -> bool:
        """Repay borrowed liquidity (principal plus yield) for an intent."""
        pass

    @abstractmethod
    async def query_intent_index(self, deposit_hash: str) -> Optional[str]:
        """Find the vault's intent index for a deposit hash, if it exists."""
        pass


class ExchangePort(ABC):
    """Centralized exchange operations.

    ``deposit``, ``swap`` and ``withdraw`` may be retried after a handler
    timeout; adapters should deduplicate them where the venue supports it
    (e.g. a client order id).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Exchange name identifier."""
        pass

    @abstractmethod
    async def deposit(self, asset: str, amount: int) -> str:
        """Move ``amount`` of ``asset`` onto the exchange. Returns a reference."""
        pass

    @abstractmethod
    async def swap(self, token_in: str, token_out: str, amount: int) -> str:
        """Place a swap order. Returns the order reference."""
        pass

    @abstractmethod
    async def swap_status(self, order_ref: str) -> bool:
        """Return True once the order is completely filled."""
        pass

    @abstractmethod
    async def withdraw(self, asset: str, amount: int, destination: str) -> str:
        """Request a withdrawal. Returns the withdrawal reference."""
        pass

    @abstractmethod
    async def withdrawal_confirmed(self, reference: str) -> bool:
        """Return True once the withdrawal has landed at its destination."""
        pass


class IntentPort(ABC):
    """Intents relay used to settle with the user."""

    @abstractmethod
    async def execute(self, signed_intent: SignedIntent) -> IntentResult:
        """Submit the user's signed intent for execution."""
        pass
