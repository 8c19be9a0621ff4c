"""State handlers and the registry that maps states to them.

A handler takes a swap and returns exactly one outcome: Advance, Retry or
Fail. Handlers may fill in correlation fields on the swap, but only the
processing loop moves it between states.

Steps that act on a collaborator skip the call when the swap already holds
its reference from an earlier attempt. A call cut off by the handler timeout
leaves no reference, so such calls may reach the collaborator twice.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from types import MappingProxyType
from typing import Awaitable, Callable, Mapping, Optional

from swapsolver.engine.models import Advance, Fail, Outcome, Retry, SwapOperation
from swapsolver.engine.states import PROCESSABLE_STATES, SwapState
from swapsolver.ports.base import (
    ExchangePort,
    IntentPort,
    PermanentPortError,
    TransientPortError,
    VaultPort,
)

logger = logging.getLogger(__name__)

StateHandler = Callable[[SwapOperation], Awaitable[Outcome]]


class HandlerRegistrationError(Exception):
    """Raised when a registry does not cover the processable states."""

    pass


class StateHandlerRegistry:
    """Fixed mapping from processable state to handler."""

    def __init__(self, handlers: Mapping[SwapState, StateHandler], strict: bool = True):
        """Initialize the registry.

        Args:
            handlers: Handler per processable state
            strict: Raise if a processable state is uncovered (otherwise just log)

        Raises:
            HandlerRegistrationError: On handlers for non-processable states,
                or on missing states when strict
        """
        invalid = [state for state in handlers if not state.is_processable]
        if invalid:
            raise HandlerRegistrationError(
                f"Handlers registered for non-processable states: "
                f"{', '.join(s.value for s in invalid)}"
            )

        self._handlers: Mapping[SwapState, StateHandler] = MappingProxyType(dict(handlers))

        missing = self.missing_states()
        if missing:
            names = ", ".join(s.value for s in missing)
            if strict:
                raise HandlerRegistrationError(f"No handler registered for: {names}")
            logger.warning(f"No handler registered for: {names}")

    def __contains__(self, state: SwapState) -> bool:
        return state in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, state: SwapState) -> Optional[StateHandler]:
        return self._handlers.get(state)

    def missing_states(self) -> list[SwapState]:
        return [state for state in PROCESSABLE_STATES if state not in self._handlers]

    @property
    def states(self) -> list[SwapState]:
        return list(self._handlers)


def maps_port_errors(func: Callable[..., Awaitable[Outcome]]) -> Callable[..., Awaitable[Outcome]]:
    """Translate collaborator errors into outcomes.

    TransientPortError becomes Retry, PermanentPortError becomes Fail. Any
    other exception propagates to the processing loop.
    """

    @wraps(func)
    async def wrapper(*args, **kwargs) -> Outcome:
        try:
            return await func(*args, **kwargs)
        except TransientPortError as e:
            return Retry(str(e))
        except PermanentPortError as e:
            return Fail(str(e))

    return wrapper


@dataclass
class HandlerSettings:
    """Parameters the default handlers need beyond the ports."""

    vault_asset: str
    withdraw_destination: str = ""
    repay_yield_bps: int = 100


class SolverHandlers:
    """Default handlers driving a swap through the solver flow.

    1. Borrow liquidity from the vault
    2. Deposit it to the exchange and swap it into the user's token
    3. Withdraw the swapped tokens and settle with the user via intents
    4. Deposit the user's tokens, swap back and repay the vault
    """

    def __init__(
        self,
        vault: VaultPort,
        exchange: ExchangePort,
        intents: IntentPort,
        settings: HandlerSettings,
    ):
        self.vault = vault
        self.exchange = exchange
        self.intents = intents
        self.settings = settings

    def registry(self) -> StateHandlerRegistry:
        """Build the registry covering every processable state."""
        return StateHandlerRegistry(
            {
                SwapState.QUOTE_ACCEPTED: self.handle_quote_accepted,
                SwapState.INTENT_CREATED: self.handle_intent_created,
                SwapState.LIQUIDITY_DEPOSITED_TO_CEX: self.handle_liquidity_deposited,
                SwapState.CEX_SWAP_IN_PROGRESS: self.handle_cex_swap_in_progress,
                SwapState.CEX_SWAP_COMPLETED: self.handle_cex_swap_completed,
                SwapState.CEX_WITHDRAWAL_PENDING: self.handle_cex_withdrawal_pending,
                SwapState.CEX_WITHDRAWAL_COMPLETED: self.handle_cex_withdrawal_completed,
                SwapState.USER_SWAP_PENDING: self.handle_user_swap_pending,
                SwapState.USER_SWAP_COMPLETED: self.handle_user_swap_completed,
                SwapState.USER_LIQUIDITY_DEPOSITED: self.handle_user_liquidity_deposited,
                SwapState.USER_LIQUIDITY_SWAPPED: self.handle_user_liquidity_swapped,
                SwapState.LIQUIDITY_REPAID: self.handle_liquidity_repaid,
            },
            strict=True,
        )

    def repayment_amount(self, swap: SwapOperation) -> int:
        """Principal plus the vault's yield."""
        return swap.amount_out + swap.amount_out * self.settings.repay_yield_bps // 10_000

    # ------------------------------------------------------------------
    # Borrow
    # ------------------------------------------------------------------

    @maps_port_errors
    async def handle_quote_accepted(self, swap: SwapOperation) -> Outcome:
        """Create the vault intent and borrow liquidity."""
        if not swap.user_deposit_hash:
            return Fail("Missing user deposit hash")
        if swap.amount_out <= 0:
            return Fail(f"Nothing to borrow (amount_out={swap.amount_out})")

        # A borrow from an earlier attempt may have landed before a timeout
        index = await self.vault.query_intent_index(swap.user_deposit_hash)
        if index is None:
            logger.info(f"Creating intent for swap {swap.id}")
            ok = await self.vault.borrow(
                swap.user_deposit_hash,
                swap.amount_out,
                f"swap-{swap.token_in}-{swap.token_out}",
            )
            if not ok:
                return Retry("Vault rejected borrow")
            index = await self.vault.query_intent_index(swap.user_deposit_hash)

        swap.intent_index = index
        if index is None:
            logger.warning(f"Swap {swap.id}: borrow succeeded but intent index not visible yet")
        return Advance(SwapState.INTENT_CREATED)

    # ------------------------------------------------------------------
    # Exchange leg
    # ------------------------------------------------------------------

    @maps_port_errors
    async def handle_intent_created(self, swap: SwapOperation) -> Outcome:
        if not swap.cex_deposit_ref:
            logger.info(f"Depositing borrowed liquidity to {self.exchange.name} for swap {swap.id}")
            swap.cex_deposit_ref = await self.exchange.deposit(self.settings.vault_asset, swap.amount_out)
        return Advance(SwapState.LIQUIDITY_DEPOSITED_TO_CEX)

    @maps_port_errors
    async def handle_liquidity_deposited(self, swap: SwapOperation) -> Outcome:
        if not swap.cex_order_ref:
            logger.info(f"Executing exchange swap for {swap.id}")
            swap.cex_order_ref = await self.exchange.swap(
                self.settings.vault_asset, swap.token_out, swap.amount_out
            )
        return Advance(SwapState.CEX_SWAP_IN_PROGRESS)

    @maps_port_errors
    async def handle_cex_swap_in_progress(self, swap: SwapOperation) -> Outcome:
        if not swap.cex_order_ref:
            return Fail("No exchange order reference")
        if not await self.exchange.swap_status(swap.cex_order_ref):
            return Retry(f"Order {swap.cex_order_ref} not filled yet")
        return Advance(SwapState.CEX_SWAP_COMPLETED)

    @maps_port_errors
    async def handle_cex_swap_completed(self, swap: SwapOperation) -> Outcome:
        if not swap.cex_withdraw_ref:
            logger.info(f"Withdrawing from {self.exchange.name} for swap {swap.id}")
            swap.cex_withdraw_ref = await self.exchange.withdraw(
                swap.token_out, swap.amount_out, self.settings.withdraw_destination
            )
        return Advance(SwapState.CEX_WITHDRAWAL_PENDING)

    @maps_port_errors
    async def handle_cex_withdrawal_pending(self, swap: SwapOperation) -> Outcome:
        if not swap.cex_withdraw_ref:
            return Fail("No withdrawal reference")
        if not await self.exchange.withdrawal_confirmed(swap.cex_withdraw_ref):
            return Retry(f"Withdrawal {swap.cex_withdraw_ref} not confirmed yet")
        return Advance(SwapState.CEX_WITHDRAWAL_COMPLETED)

    # ------------------------------------------------------------------
    # Settlement with the user
    # ------------------------------------------------------------------

    async def handle_cex_withdrawal_completed(self, swap: SwapOperation) -> Outcome:
        if swap.signed_intent is None:
            return Fail("No signed user intent attached")
        return Advance(SwapState.USER_SWAP_PENDING)

    @maps_port_errors
    async def handle_user_swap_pending(self, swap: SwapOperation) -> Outcome:
        if swap.signed_intent is None:
            return Fail("No signed user intent attached")

        logger.info(f"Executing user intent for swap {swap.id}")
        result = await self.intents.execute(swap.signed_intent)
        if not result.success:
            return Retry(f"Intent execution not settled: {result.status or 'unknown'}")

        swap.intent_hash = result.intent_hash
        return Advance(SwapState.USER_SWAP_COMPLETED)

    # ------------------------------------------------------------------
    # Repayment leg
    # ------------------------------------------------------------------

    @maps_port_errors
    async def handle_user_swap_completed(self, swap: SwapOperation) -> Outcome:
        if not swap.user_deposit_ref:
            logger.info(f"Depositing user liquidity for swap {swap.id}")
            swap.user_deposit_ref = await self.exchange.deposit(swap.token_in, swap.amount_in)
        return Advance(SwapState.USER_LIQUIDITY_DEPOSITED)

    @maps_port_errors
    async def handle_user_liquidity_deposited(self, swap: SwapOperation) -> Outcome:
        if not swap.swap_back_order_ref:
            logger.info(f"Swapping user liquidity back for {swap.id}")
            swap.swap_back_order_ref = await self.exchange.swap(
                swap.token_in, self.settings.vault_asset, swap.amount_in
            )

        if not await self.exchange.swap_status(swap.swap_back_order_ref):
            return Retry(f"Order {swap.swap_back_order_ref} not filled yet")
        return Advance(SwapState.USER_LIQUIDITY_SWAPPED)

    @maps_port_errors
    async def handle_user_liquidity_swapped(self, swap: SwapOperation) -> Outcome:
        if swap.intent_index is None:
            # Borrow may have been indexed late
            if swap.user_deposit_hash:
                swap.intent_index = await self.vault.query_intent_index(swap.user_deposit_hash)
            if swap.intent_index is None:
                return Fail("No intent index found")

        amount = self.repayment_amount(swap)
        logger.info(f"Repaying {amount} for swap {swap.id} (intent {swap.intent_index})")
        if not await self.vault.repay(swap.intent_index, amount):
            return Retry("Vault rejected repayment")
        return Advance(SwapState.LIQUIDITY_REPAID)

    async def handle_liquidity_repaid(self, swap: SwapOperation) -> Outcome:
        logger.info(f"Swap {swap.id} completed successfully")
        return Advance(SwapState.COMPLETED)
