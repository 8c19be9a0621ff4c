"""Dry-run simulation of the solver flow.

Submits and accepts a batch of quotes against simulated collaborators, then
ticks the engine until every swap reaches a terminal state.

Usage:
    swapsolver-simulate --swaps 20
    swapsolver-simulate --swaps 200 --fill-after 2 --confirm-after 1
"""

import argparse
import asyncio
import json
import logging
import secrets

from swapsolver.config import get_settings
from swapsolver.engine.models import QuoteRequest, SignedIntent
from swapsolver.engine.processor import SwapEngine
from swapsolver.engine.states import TERMINAL_STATES
from swapsolver.main import configure_logging
from swapsolver.ports.dry_run import DryRunExchange, DryRunIntentRelay, DryRunVault
from swapsolver.ports.factory import Ports

logger = logging.getLogger(__name__)


def build_signed_intent(token_in: str, amount_in: int, token_out: str, amount_out: int) -> SignedIntent:
    """Create an unsigned-but-well-formed token_diff intent for simulation."""
    payload = {
        "signer_id": "sim.near",
        "verifying_contract": "intents.near",
        "deadline": "2099-01-01T00:00:00Z",
        "nonce": secrets.token_hex(16),
        "intents": [
            {
                "intent": "token_diff",
                "diff": {token_in: str(-amount_in), token_out: str(amount_out)},
            }
        ],
    }
    return SignedIntent(
        standard="erc191",
        payload=json.dumps(payload),
        signature=f"secp256k1:{secrets.token_hex(32)}",
    )


async def run_simulation(
    swaps: int,
    amount: int,
    fill_after: int = 0,
    confirm_after: int = 0,
    max_ticks: int = 100,
) -> dict:
    """Run the simulation and return the final engine stats."""
    settings = get_settings()
    pairs = settings.token_pairs()
    if not pairs:
        raise SystemExit("No supported pairs configured")
    pair = pairs[0]

    ports = Ports(
        vault=DryRunVault(),
        exchange=DryRunExchange(fill_after_polls=fill_after, confirm_after_polls=confirm_after),
        intents=DryRunIntentRelay(),
    )
    engine = SwapEngine.from_settings(settings, ports=ports)

    for i in range(swaps):
        quote = QuoteRequest(
            quote_id=f"sim-quote-{i}-{secrets.token_hex(4)}",
            token_in=pair.token_in,
            token_out=pair.token_out,
            exact_amount_in=amount,
        )
        swap = engine.submit_quote(quote)
        if swap is None:
            logger.warning(f"Quote {quote.quote_id} rejected (amount {amount} outside pair limits)")
            continue
        intent = build_signed_intent(swap.token_in, swap.amount_in, swap.token_out, swap.amount_out)
        engine.accept_quote(quote.quote_id, intent)

    tracked = len(engine.store)
    ticks = 0
    while ticks < max_ticks:
        finished = sum(len(engine.store.all_ids_in_state(s)) for s in TERMINAL_STATES)
        if finished == tracked:
            break
        await engine.process_all_states()
        ticks += 1

    stats = engine.get_stats()
    stats["ticks"] = ticks
    return stats


def main():
    parser = argparse.ArgumentParser(description="Simulate the solver flow in dry-run mode")
    parser.add_argument("--swaps", type=int, default=10, help="Number of quotes to submit")
    parser.add_argument("--amount", type=int, default=10_000_000, help="Amount in (base units)")
    parser.add_argument("--fill-after", type=int, default=0, help="Polls before orders fill")
    parser.add_argument("--confirm-after", type=int, default=0, help="Polls before withdrawals confirm")
    parser.add_argument("--max-ticks", type=int, default=100, help="Stop after this many ticks")

    args = parser.parse_args()

    configure_logging(get_settings())

    stats = asyncio.run(
        run_simulation(
            swaps=args.swaps,
            amount=args.amount,
            fill_after=args.fill_after,
            confirm_after=args.confirm_after,
            max_ticks=args.max_ticks,
        )
    )

    logger.info("=" * 60)
    logger.info("SIMULATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Ticks: {stats['ticks']}")
    logger.info(f"Tracked: {stats['total']}")
    for state, count in stats["by_state"].items():
        if count:
            logger.info(f"  {state}: {count}")


if __name__ == "__main__":
    main()
