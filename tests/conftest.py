"""Pytest configuration and fixtures."""

import os

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["DEBUG"] = "true"

from swapsolver.engine.handlers import StateHandlerRegistry
from swapsolver.engine.models import Advance, SwapOperation
from swapsolver.engine.processor import EngineConfig, SwapEngine
from swapsolver.engine.states import PROCESSABLE_STATES, SwapState
from swapsolver.engine.store import SwapStore


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_swap(quote_id: str, state: SwapState = SwapState.QUOTE_ACCEPTED, **kwargs) -> SwapOperation:
    """Build a swap with sensible defaults for tests."""
    defaults = {
        "amount_in": 10_000_000,
        "amount_out": 9_000_000,
        "token_in": "token-a",
        "token_out": "token-b",
        "user_deposit_hash": f"hash-{quote_id}",
    }
    defaults.update(kwargs)
    return SwapOperation(quote_id=quote_id, state=state, **defaults)


def advancing_handlers() -> dict:
    """A handler per processable state that always advances one step."""
    order = list(SwapState)

    def advance_to(next_state):
        async def handler(swap):
            return Advance(next_state)
        return handler

    return {state: advance_to(order[order.index(state) + 1]) for state in PROCESSABLE_STATES}


def make_engine(handlers: dict, clock=None, **config) -> SwapEngine:
    """Engine over an arbitrary (possibly partial) set of handlers."""
    registry = StateHandlerRegistry(handlers, strict=False)
    return SwapEngine(registry, config=EngineConfig(**config), clock=clock or ManualClock())


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock) -> SwapStore:
    return SwapStore(clock=clock)
