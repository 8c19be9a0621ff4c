"""Cleanup sweeper - drops terminal swaps once their retention window passes."""

import asyncio
import logging

from swapsolver.engine.states import TERMINAL_STATES
from swapsolver.engine.store import SwapStore

logger = logging.getLogger(__name__)


class CleanupSweeper:
    """Removes COMPLETED and FAILED swaps older than the TTL."""

    def __init__(self, store: SwapStore, ttl_seconds: float = 3600.0, interval_seconds: float = 60.0):
        """Initialize the sweeper.

        Args:
            store: Swap record store to sweep
            ttl_seconds: How long terminal swaps are kept after their last update
            interval_seconds: How often to sweep in ``run``
        """
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds

    def sweep(self) -> list[str]:
        """Run one cleanup pass over the terminal buckets.

        Returns:
            Ids of the removed swaps
        """
        now = self.store.now()
        removed = []

        for state in TERMINAL_STATES:
            for swap in self.store.swaps_in_state(state):
                if now - swap.updated_at > self.ttl_seconds:
                    if self.store.remove(swap.id) is not None:
                        removed.append(swap.id)

        if removed:
            logger.info(f"Cleaned up {len(removed)} old swap(s) (remaining: {len(self.store)})")
        return removed

    async def run(self) -> None:
        """Sweep on a fixed interval until cancelled."""
        logger.info(
            f"Starting cleanup sweeper (interval: {self.interval_seconds}s, ttl: {self.ttl_seconds}s)"
        )

        while True:
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Sweeper error: {e}")

            await asyncio.sleep(self.interval_seconds)
