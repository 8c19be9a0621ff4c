"""Swap orchestration engine.

Tracks every in-flight swap as a node in the state graph and advances it by
invoking per-state handlers on a fixed tick, with bounded concurrency per
state, bounded retries, and TTL cleanup of finished swaps.

The processing loop lives in ``swapsolver.engine.processor``.
"""

from swapsolver.engine.models import (
    Advance,
    Fail,
    Outcome,
    QuoteRequest,
    Retry,
    SignedIntent,
    SwapOperation,
    TokenPair,
)
from swapsolver.engine.states import (
    PROCESSABLE_STATES,
    TERMINAL_STATES,
    SwapState,
)
from swapsolver.engine.store import DuplicateSwapError, SwapStore

__all__ = [
    "Advance",
    "DuplicateSwapError",
    "Fail",
    "Outcome",
    "PROCESSABLE_STATES",
    "QuoteRequest",
    "Retry",
    "SignedIntent",
    "SwapOperation",
    "SwapState",
    "SwapStore",
    "TERMINAL_STATES",
    "TokenPair",
]
