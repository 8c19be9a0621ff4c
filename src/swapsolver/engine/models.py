"""Data model for swap operations and handler outcomes."""

import uuid
from dataclasses import dataclass, field
from typing import Optional, Union

from swapsolver.engine.states import SwapState


@dataclass
class TokenPair:
    """A supported token pair with amount limits (token base units)."""

    token_in: str   # defuse asset identifier
    token_out: str  # defuse asset identifier
    min_amount: int
    max_amount: Optional[int] = None

    def accepts(self, token_in: str, token_out: str, amount: int) -> bool:
        """Check if a quote for this pair and amount should be served."""
        if token_in != self.token_in or token_out != self.token_out:
            return False
        if amount < self.min_amount:
            return False
        if self.max_amount is not None and amount > self.max_amount:
            return False
        return True


@dataclass
class QuoteRequest:
    """A quote request seen on the solver relay."""

    quote_id: str
    token_in: str
    token_out: str
    exact_amount_in: Optional[int] = None
    exact_amount_out: Optional[int] = None
    min_deadline_ms: Optional[int] = None


@dataclass
class SignedIntent:
    """User-signed intent payload (signing itself happens elsewhere)."""

    standard: str   # e.g. "erc191"
    payload: str    # JSON intent message
    signature: str

    def to_dict(self) -> dict:
        return {
            "standard": self.standard,
            "payload": self.payload,
            "signature": self.signature,
        }


def new_swap_id() -> str:
    return f"swap-{uuid.uuid4().hex}"


@dataclass
class SwapOperation:
    """A single borrowed-liquidity swap tracked by the engine."""

    quote_id: str
    amount_in: int
    amount_out: int
    token_in: str
    token_out: str
    state: SwapState = SwapState.PENDING_ACCEPTANCE
    id: str = field(default_factory=new_swap_id)
    created_at: float = 0.0
    updated_at: float = 0.0
    retries: int = 0

    quote_request: Optional[QuoteRequest] = None
    signed_intent: Optional[SignedIntent] = None
    user_deposit_hash: Optional[str] = None

    # Collaborator correlation, filled in by handlers
    intent_index: Optional[str] = None
    cex_deposit_ref: Optional[str] = None
    cex_order_ref: Optional[str] = None
    cex_withdraw_ref: Optional[str] = None
    user_deposit_ref: Optional[str] = None
    swap_back_order_ref: Optional[str] = None
    intent_hash: Optional[str] = None

    error: Optional[str] = None

    @property
    def pair_label(self) -> str:
        return f"{self.token_in}->{self.token_out}"

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "id": self.id,
            "quote_id": self.quote_id,
            "state": self.state.value,
            "amount_in": str(self.amount_in),
            "amount_out": str(self.amount_out),
            "token_in": self.token_in,
            "token_out": self.token_out,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "retries": self.retries,
            "user_deposit_hash": self.user_deposit_hash,
            "intent_index": self.intent_index,
            "cex_deposit_ref": self.cex_deposit_ref,
            "cex_order_ref": self.cex_order_ref,
            "cex_withdraw_ref": self.cex_withdraw_ref,
            "user_deposit_ref": self.user_deposit_ref,
            "swap_back_order_ref": self.swap_back_order_ref,
            "intent_hash": self.intent_hash,
            "error": self.error,
        }


@dataclass(frozen=True)
class Advance:
    """Handler succeeded; move the swap to ``next_state``."""

    next_state: SwapState


@dataclass(frozen=True)
class Retry:
    """Transient problem; try again next tick."""

    reason: str


@dataclass(frozen=True)
class Fail:
    """Unrecoverable problem; move the swap to FAILED."""

    reason: str


Outcome = Union[Advance, Retry, Fail]
