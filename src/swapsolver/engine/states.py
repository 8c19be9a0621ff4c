"""Swap state graph.

PENDING_ACCEPTANCE -> QUOTE_ACCEPTED -> ... -> LIQUIDITY_REPAID -> COMPLETED

Every processable state may also move to FAILED. States only move forward.
"""

from enum import Enum


class SwapState(str, Enum):
    """Swap state machine states."""

    PENDING_ACCEPTANCE = "pending_acceptance"              # Quote tracked, user has not signed
    QUOTE_ACCEPTED = "quote_accepted"                      # User signed, borrow next
    INTENT_CREATED = "intent_created"                      # Liquidity borrowed from vault
    LIQUIDITY_DEPOSITED_TO_CEX = "liquidity_deposited_to_cex"
    CEX_SWAP_IN_PROGRESS = "cex_swap_in_progress"
    CEX_SWAP_COMPLETED = "cex_swap_completed"
    CEX_WITHDRAWAL_PENDING = "cex_withdrawal_pending"
    CEX_WITHDRAWAL_COMPLETED = "cex_withdrawal_completed"
    USER_SWAP_PENDING = "user_swap_pending"                # Intent being executed with user
    USER_SWAP_COMPLETED = "user_swap_completed"
    USER_LIQUIDITY_DEPOSITED = "user_liquidity_deposited"  # User funds on the exchange
    USER_LIQUIDITY_SWAPPED = "user_liquidity_swapped"      # Swapped back to vault asset
    LIQUIDITY_REPAID = "liquidity_repaid"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_processable(self) -> bool:
        return self in PROCESSABLE_STATES

    @property
    def rank(self) -> int:
        """Position in the lifecycle (FAILED ranks last)."""
        return _ORDER.index(self)

    def can_advance_to(self, other: "SwapState") -> bool:
        """Check if moving from this state to ``other`` is a legal transition."""
        if self.is_terminal:
            return False
        if other == SwapState.FAILED:
            return True
        return other.rank > self.rank


_ORDER = list(SwapState)

PROCESSABLE_STATES: tuple[SwapState, ...] = (
    SwapState.QUOTE_ACCEPTED,
    SwapState.INTENT_CREATED,
    SwapState.LIQUIDITY_DEPOSITED_TO_CEX,
    SwapState.CEX_SWAP_IN_PROGRESS,
    SwapState.CEX_SWAP_COMPLETED,
    SwapState.CEX_WITHDRAWAL_PENDING,
    SwapState.CEX_WITHDRAWAL_COMPLETED,
    SwapState.USER_SWAP_PENDING,
    SwapState.USER_SWAP_COMPLETED,
    SwapState.USER_LIQUIDITY_DEPOSITED,
    SwapState.USER_LIQUIDITY_SWAPPED,
    SwapState.LIQUIDITY_REPAID,
)

TERMINAL_STATES: tuple[SwapState, ...] = (SwapState.COMPLETED, SwapState.FAILED)

FIRST_PROCESSABLE_STATE = SwapState.QUOTE_ACCEPTED
