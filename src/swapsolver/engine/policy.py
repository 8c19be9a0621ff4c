"""Bounded retry policy.

The tick interval is the only spacing between attempts; there is no backoff
at this level. Collaborators that need backoff for a specific call do it
themselves.
"""

import logging
from dataclasses import dataclass

from swapsolver.engine.models import Advance, Fail, Outcome, Retry, SwapOperation
from swapsolver.engine.states import SwapState

logger = logging.getLogger(__name__)


@dataclass
class RetryPolicy:
    """Decides what a handler outcome means for the swap."""

    max_retries: int = 3

    def resolve(self, swap: SwapOperation, state: SwapState, outcome: Outcome) -> Outcome:
        """Return the outcome the loop should apply.

        Increments ``swap.retries`` on Retry and converts it into Fail once
        the counter exceeds ``max_retries``. Illegal Advance targets are
        treated as a Retry.
        """
        if isinstance(outcome, Advance):
            if not state.can_advance_to(outcome.next_state):
                logger.error(
                    f"Swap {swap.id}: handler for {state.value} returned illegal "
                    f"transition to {outcome.next_state.value}"
                )
                outcome = Retry(f"invalid transition {state.value} -> {outcome.next_state.value}")
            else:
                return outcome

        if isinstance(outcome, Retry):
            swap.retries += 1
            if swap.retries > self.max_retries:
                logger.error(
                    f"Swap {swap.id} failed after {self.max_retries} retries in "
                    f"{state.value}: {outcome.reason}"
                )
                return Fail(f"max retries exceeded: {outcome.reason}")
            logger.warning(
                f"Swap {swap.id} retry {swap.retries}/{self.max_retries} in "
                f"{state.value}: {outcome.reason}"
            )
            return outcome

        if isinstance(outcome, Fail):
            logger.error(f"Swap {swap.id} failed in {state.value}: {outcome.reason}")
            return outcome

        logger.error(f"Swap {swap.id}: handler returned {outcome!r}, expected an outcome")
        return self.resolve(swap, state, Retry(f"invalid handler result {type(outcome).__name__}"))
