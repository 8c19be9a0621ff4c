"""In-memory swap record store.

Keeps every tracked swap keyed by id, plus two secondary indexes:
- state -> set of swap ids (one bucket per SwapState)
- quote id -> swap id

All index mutation happens under a single lock that is never held across an
await, so readers never see a swap in two buckets or in none. The same lock
guards the in-flight markers used by the processing loop.
"""

import logging
import threading
import time
from typing import Callable, Optional

from swapsolver.engine.models import SwapOperation
from swapsolver.engine.states import SwapState

logger = logging.getLogger(__name__)


class DuplicateSwapError(Exception):
    """Raised when a swap id or quote id is already tracked."""

    pass


class SwapStore:
    """Table of swap operations with per-state and per-quote indexes."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._swaps: dict[str, SwapOperation] = {}
        self._by_state: dict[SwapState, set[str]] = {state: set() for state in SwapState}
        self._by_quote: dict[str, str] = {}
        self._in_flight: set[str] = set()

    def __len__(self) -> int:
        return len(self._swaps)

    def __contains__(self, swap_id: str) -> bool:
        return swap_id in self._swaps

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def create(self, swap: SwapOperation) -> SwapOperation:
        """Insert a new swap and index it by state and quote id.

        Raises:
            DuplicateSwapError: If the id or quote id is already tracked
        """
        with self._lock:
            self._insert(swap)
        return swap

    def get_or_create(
        self, quote_id: str, factory: Callable[[], SwapOperation]
    ) -> tuple[SwapOperation, bool]:
        """Return the swap tracking ``quote_id``, creating it if needed.

        Returns:
            (swap, created) where created is True if ``factory`` was used
        """
        with self._lock:
            swap_id = self._by_quote.get(quote_id)
            if swap_id is not None:
                return self._swaps[swap_id], False
            swap = factory()
            self._insert(swap)
            return swap, True

    def _insert(self, swap: SwapOperation) -> None:
        if swap.id in self._swaps:
            raise DuplicateSwapError(f"Swap {swap.id} already exists")
        if swap.quote_id in self._by_quote:
            raise DuplicateSwapError(f"Quote {swap.quote_id} is already tracked")

        now = self._clock()
        if not swap.created_at:
            swap.created_at = now
        if not swap.updated_at:
            swap.updated_at = swap.created_at

        self._swaps[swap.id] = swap
        self._by_state[swap.state].add(swap.id)
        self._by_quote[swap.quote_id] = swap.id

    def get(self, swap_id: str) -> Optional[SwapOperation]:
        return self._swaps.get(swap_id)

    def find_by_quote_id(self, quote_id: str) -> Optional[SwapOperation]:
        swap_id = self._by_quote.get(quote_id)
        if swap_id is None:
            return None
        return self._swaps.get(swap_id)

    def remove(self, swap_id: str) -> Optional[SwapOperation]:
        """Drop a swap from every index. Returns the removed record."""
        with self._lock:
            swap = self._swaps.pop(swap_id, None)
            if swap is None:
                return None
            self._by_state[swap.state].discard(swap_id)
            if self._by_quote.get(swap.quote_id) == swap_id:
                del self._by_quote[swap.quote_id]
            self._in_flight.discard(swap_id)
        return swap

    # ------------------------------------------------------------------
    # State index
    # ------------------------------------------------------------------

    def reindex(
        self,
        swap_id: str,
        old_state: SwapState,
        new_state: SwapState,
        error: Optional[str] = None,
    ) -> bool:
        """Atomically move a swap from ``old_state`` to ``new_state``.

        The record's state, its bucket membership, ``updated_at`` and the
        retry counter change together. Nothing changes if the swap is gone,
        is no longer in ``old_state``, or ``old_state`` is terminal.

        Returns:
            True if the swap was moved
        """
        with self._lock:
            swap = self._swaps.get(swap_id)
            if swap is None or swap.state != old_state:
                return False
            if old_state.is_terminal:
                logger.error(f"Refusing to move terminal swap {swap_id} out of {old_state.value}")
                return False

            self._by_state[old_state].discard(swap_id)
            self._by_state[new_state].add(swap_id)
            swap.state = new_state
            swap.updated_at = self._clock()
            swap.retries = 0
            if error is not None:
                swap.error = error
        return True

    def all_ids_in_state(self, state: SwapState) -> list[str]:
        """Snapshot of the swap ids currently indexed under ``state``."""
        with self._lock:
            return list(self._by_state[state])

    def swaps_in_state(self, state: SwapState) -> list[SwapOperation]:
        with self._lock:
            return [self._swaps[swap_id] for swap_id in self._by_state[state]]

    def counts(self) -> dict[SwapState, int]:
        with self._lock:
            return {state: len(ids) for state, ids in self._by_state.items()}

    # ------------------------------------------------------------------
    # In-flight markers
    # ------------------------------------------------------------------

    def claim(self, state: SwapState, batch_size: int, max_in_flight: int) -> list[SwapOperation]:
        """Select and mark in flight the swaps to dispatch for ``state``.

        Skips swaps already in flight, takes the oldest ``updated_at`` first,
        caps the selection at ``batch_size`` and at whatever is left of
        ``max_in_flight`` for this state.
        """
        with self._lock:
            bucket = self._by_state[state]
            busy = sum(1 for swap_id in bucket if swap_id in self._in_flight)
            slots = min(batch_size, max_in_flight - busy)
            if slots <= 0:
                return []

            idle = [self._swaps[swap_id] for swap_id in bucket if swap_id not in self._in_flight]
            idle.sort(key=lambda s: (s.updated_at, s.created_at))
            selected = idle[:slots]
            for swap in selected:
                self._in_flight.add(swap.id)
            return selected

    def release(self, swap_id: str) -> None:
        with self._lock:
            self._in_flight.discard(swap_id)

    def is_in_flight(self, swap_id: str) -> bool:
        return swap_id in self._in_flight

    def in_flight_count(self, state: Optional[SwapState] = None) -> int:
        with self._lock:
            if state is None:
                return len(self._in_flight)
            return sum(1 for swap_id in self._by_state[state] if swap_id in self._in_flight)
