"""Swap engine - the processing loop that advances swaps through their states.

Flow per tick:
1. Every processable state is processed concurrently
2. For each state, up to ``batch_size`` idle swaps are claimed (oldest first),
   bounded by ``max_concurrent_per_state`` minus the swaps already in flight
3. Claimed swaps run their handler concurrently under a timeout
4. The retry policy resolves the outcome and the store reindexes the swap

Ticks are spawned on a fixed interval and never wait for each other; the
in-flight markers keep a slow handler from being dispatched twice.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Optional

from swapsolver.engine.handlers import (
    HandlerSettings,
    SolverHandlers,
    StateHandler,
    StateHandlerRegistry,
)
from swapsolver.engine.ingress import QuoteIngress
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
from swapsolver.engine.policy import RetryPolicy
from swapsolver.engine.states import PROCESSABLE_STATES, SwapState
from swapsolver.engine.store import SwapStore
from swapsolver.engine.sweeper import CleanupSweeper
from swapsolver.ports.factory import Ports, build_ports

if TYPE_CHECKING:
    from swapsolver.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Configuration for the swap engine."""

    # Timing
    processing_interval_seconds: float = 1.0
    handler_timeout_seconds: float = 30.0

    # Limits
    max_concurrent_per_state: int = 50
    batch_size: int = 100
    max_retries: int = 3

    # Cleanup
    completed_swap_ttl_seconds: float = 3600.0  # 1 hour
    cleanup_interval_seconds: float = 60.0

    # Ingress
    fee_percentage: Decimal = Decimal("0.1")
    supported_pairs: list[TokenPair] = field(default_factory=list)

    def __post_init__(self):
        positive = {
            "processing_interval_seconds": self.processing_interval_seconds,
            "handler_timeout_seconds": self.handler_timeout_seconds,
            "max_concurrent_per_state": self.max_concurrent_per_state,
            "batch_size": self.batch_size,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")

    @classmethod
    def from_settings(cls, settings: "Settings") -> "EngineConfig":
        return cls(
            processing_interval_seconds=settings.processing_interval_seconds,
            handler_timeout_seconds=settings.handler_timeout_seconds,
            max_concurrent_per_state=settings.max_concurrent_per_state,
            batch_size=settings.batch_size,
            max_retries=settings.max_retries,
            completed_swap_ttl_seconds=settings.completed_swap_ttl_seconds,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
            fee_percentage=settings.fee_percentage,
            supported_pairs=settings.token_pairs(),
        )


class SwapEngine:
    """Tracks in-flight swaps and drives them to COMPLETED or FAILED."""

    def __init__(
        self,
        registry: StateHandlerRegistry,
        config: Optional[EngineConfig] = None,
        store: Optional[SwapStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or EngineConfig()
        self.registry = registry
        self.store = store or SwapStore(clock=clock)
        self.policy = RetryPolicy(max_retries=self.config.max_retries)
        self.ingress = QuoteIngress(
            self.store,
            pairs=self.config.supported_pairs,
            fee_percentage=self.config.fee_percentage,
        )
        self.sweeper = CleanupSweeper(
            self.store,
            ttl_seconds=self.config.completed_swap_ttl_seconds,
            interval_seconds=self.config.cleanup_interval_seconds,
        )

        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._ticks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        settings: "Settings",
        ports: Optional[Ports] = None,
        clock: Callable[[], float] = time.time,
    ) -> "SwapEngine":
        """Build an engine with the default solver handlers."""
        ports = ports or build_ports(settings)
        handlers = SolverHandlers(
            vault=ports.vault,
            exchange=ports.exchange,
            intents=ports.intents,
            settings=HandlerSettings(
                vault_asset=settings.vault_asset,
                withdraw_destination=settings.cex_withdraw_destination,
                repay_yield_bps=settings.repay_yield_bps,
            ),
        )
        return cls(
            registry=handlers.registry(),
            config=EngineConfig.from_settings(settings),
            clock=clock,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # Ingress
    # =========================================================================

    def submit_quote(self, quote: QuoteRequest) -> Optional[SwapOperation]:
        """Track a relay quote request. Returns None for unsupported quotes."""
        return self.ingress.submit_quote(quote)

    def accept_quote(self, quote_id: str, signed_intent: SignedIntent) -> Optional[SwapOperation]:
        """Mark a quote as accepted by the user; processing starts next tick.

        Returns None for an unknown quote whose intent is not supported.
        """
        return self.ingress.accept_quote(quote_id, signed_intent)

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_swap(self, swap_id: str) -> Optional[SwapOperation]:
        return self.store.get(swap_id)

    def get_swaps_by_state(self, state: SwapState) -> list[SwapOperation]:
        return self.store.swaps_in_state(state)

    def get_stats(self) -> dict:
        """Counts per state for monitoring.

        Per-state counts live under ``by_state``, keyed by state value
        (e.g. ``stats["by_state"]["pending_acceptance"]``), next to the
        ``total`` and ``in_flight`` totals.
        """
        counts = self.store.counts()
        return {
            "total": len(self.store),
            "in_flight": self.store.in_flight_count(),
            "by_state": {state.value: counts[state] for state in SwapState},
        }

    # =========================================================================
    # Processing loop
    # =========================================================================

    async def process_all_states(self) -> int:
        """Run one tick over every processable state.

        Returns:
            Number of swaps dispatched
        """
        results = await asyncio.gather(
            *(self.process_state(state) for state in PROCESSABLE_STATES),
            return_exceptions=True,
        )

        dispatched = 0
        for state, result in zip(PROCESSABLE_STATES, results):
            if isinstance(result, BaseException):
                logger.error(f"Error processing state {state.value}: {type(result).__name__}: {result}")
            else:
                dispatched += result
        return dispatched

    async def process_state(self, state: SwapState) -> int:
        """Dispatch the eligible swaps in one state and wait for their outcomes."""
        handler = self.registry.get(state)
        if handler is None:
            stalled = len(self.store.all_ids_in_state(state))
            if stalled:
                logger.error(f"No handler for state {state.value}; {stalled} swap(s) stalled")
            return 0

        swaps = self.store.claim(
            state,
            batch_size=self.config.batch_size,
            max_in_flight=self.config.max_concurrent_per_state,
        )
        if not swaps:
            return 0

        logger.debug(f"Dispatching {len(swaps)} swap(s) in {state.value}")
        await asyncio.gather(*(self._process_swap(swap, state, handler) for swap in swaps))
        return len(swaps)

    async def _process_swap(self, swap: SwapOperation, state: SwapState, handler: StateHandler) -> None:
        try:
            outcome = await self._invoke(swap, state, handler)
            self._apply(swap, state, outcome)
        finally:
            self.store.release(swap.id)

    async def _invoke(self, swap: SwapOperation, state: SwapState, handler: StateHandler) -> Outcome:
        try:
            return await asyncio.wait_for(handler(swap), timeout=self.config.handler_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Swap {swap.id}: {state.value} handler timed out after "
                f"{self.config.handler_timeout_seconds}s"
            )
            return Retry("timeout")
        except Exception as e:
            logger.error(f"Swap {swap.id}: {state.value} handler raised {type(e).__name__}: {e}")
            return Retry(f"{type(e).__name__}: {e}")

    def _apply(self, swap: SwapOperation, state: SwapState, outcome: Outcome) -> None:
        resolved = self.policy.resolve(swap, state, outcome)

        if isinstance(resolved, Advance):
            if self.store.reindex(swap.id, state, resolved.next_state):
                logger.info(f"Swap {swap.id}: {state.value} -> {resolved.next_state.value}")
            else:
                logger.warning(f"Swap {swap.id} left {state.value} while in flight; outcome dropped")
        elif isinstance(resolved, Fail):
            if self.store.reindex(swap.id, state, SwapState.FAILED, error=resolved.reason):
                logger.info(f"Swap {swap.id}: {state.value} -> {SwapState.FAILED.value}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _spawn_tick(self) -> asyncio.Task:
        task = asyncio.create_task(self.process_all_states())
        self._ticks.add(task)
        task.add_done_callback(self._ticks.discard)
        return task

    async def run(self) -> None:
        """Spawn a tick every ``processing_interval_seconds`` until cancelled."""
        logger.info(
            f"Processing loop started (interval: {self.config.processing_interval_seconds}s)"
        )
        while True:
            self._spawn_tick()
            await asyncio.sleep(self.config.processing_interval_seconds)

    def start(self) -> None:
        """Start the processing loop and the cleanup sweeper in the background."""
        if self._running:
            logger.info("Swap engine already running")
            return

        self._running = True
        self._tasks = [
            asyncio.create_task(self.run()),
            asyncio.create_task(self.sweeper.run()),
        ]
        logger.info(
            f"Swap engine started: max_concurrent={self.config.max_concurrent_per_state}, "
            f"batch_size={self.config.batch_size}, max_retries={self.config.max_retries}"
        )

    async def drain(self) -> None:
        """Wait for all outstanding ticks to finish."""
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    async def stop(self) -> None:
        """Cancel the loops and any outstanding ticks."""
        if not self._running:
            return

        logger.info("Stopping swap engine...")
        self._running = False

        pending = [*self._tasks, *self._ticks]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []

        logger.info(f"Swap engine stopped ({len(self.store)} tracked swaps)")
