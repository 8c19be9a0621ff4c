"""Ingress: turning relay quotes and user acceptances into swap records.

Most quote traffic on a shared relay is for pairs this solver does not
serve, so unsupported quotes are dropped quietly rather than reported.
"""

import hashlib
import json
import logging
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from swapsolver.engine.models import QuoteRequest, SignedIntent, SwapOperation, TokenPair
from swapsolver.engine.states import FIRST_PROCESSABLE_STATE, SwapState
from swapsolver.engine.store import SwapStore

logger = logging.getLogger(__name__)

FEE_PRECISION = 1_000_000


def calculate_amount_out(amount_in: int, fee_percentage: Decimal) -> int:
    """Amount paid out to the user after the bridge fee.

    The fee rate is truncated to six decimals and the fee rounded down.
    """
    rate = int((Decimal(fee_percentage) * FEE_PRECISION).to_integral_value(rounding=ROUND_FLOOR))
    fee = amount_in * rate // FEE_PRECISION
    return amount_in - fee


def user_deposit_hash(quote_id: str, signed_intent: SignedIntent) -> str:
    """Deterministic hash identifying the user's deposit on the vault."""
    data = f"{quote_id}:{signed_intent.standard}:{signed_intent.payload}:{signed_intent.signature}"
    return hashlib.sha256(data.encode()).hexdigest()


def extract_token_diff(signed_intent: SignedIntent) -> Optional[tuple[str, int, str, int]]:
    """Read (token_in, amount_in, token_out, amount_out) from a token_diff intent.

    The user's diff is negative for the token they give and positive for the
    token they receive. Returns None if the payload has no usable diff.
    """
    try:
        message = json.loads(signed_intent.payload)
        diff = message["intents"][0]["diff"]
        given = [(token, -int(amount)) for token, amount in diff.items() if int(amount) < 0]
        received = [(token, int(amount)) for token, amount in diff.items() if int(amount) > 0]
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        return None

    if len(given) != 1 or len(received) != 1:
        return None
    (token_in, amount_in), (token_out, amount_out) = given[0], received[0]
    return token_in, amount_in, token_out, amount_out


class QuoteIngress:
    """Entry points that create swaps and make them active."""

    def __init__(
        self,
        store: SwapStore,
        pairs: list[TokenPair],
        fee_percentage: Decimal = Decimal("0.1"),
    ):
        self.store = store
        self.pairs = pairs
        self.fee_percentage = fee_percentage

    def is_supported(self, quote: QuoteRequest) -> bool:
        """Check the quote against the pair allow-list and amount limits."""
        amount = quote.exact_amount_in or 0
        return any(pair.accepts(quote.token_in, quote.token_out, amount) for pair in self.pairs)

    def submit_quote(self, quote: QuoteRequest) -> Optional[SwapOperation]:
        """Track a quote request as a swap awaiting acceptance.

        Returns:
            The tracked swap, or None if the quote is not for a supported pair
        """
        if not self.is_supported(quote):
            logger.debug(
                f"Ignoring quote {quote.quote_id}: {quote.token_in} -> {quote.token_out} "
                f"({quote.exact_amount_in}) not supported"
            )
            return None

        amount_in = quote.exact_amount_in or 0

        def factory() -> SwapOperation:
            return SwapOperation(
                quote_id=quote.quote_id,
                quote_request=quote,
                amount_in=amount_in,
                amount_out=calculate_amount_out(amount_in, self.fee_percentage),
                token_in=quote.token_in,
                token_out=quote.token_out,
                state=SwapState.PENDING_ACCEPTANCE,
            )

        swap, created = self.store.get_or_create(quote.quote_id, factory)
        if created:
            logger.info(
                f"Created swap {swap.id} for quote {quote.quote_id} "
                f"(total tracked: {len(self.store)})"
            )
        else:
            logger.debug(f"Quote {quote.quote_id} already tracked as {swap.id}")
        return swap

    def accept_quote(self, quote_id: str, signed_intent: SignedIntent) -> Optional[SwapOperation]:
        """Attach the user's signed intent and make the swap processable.

        Quotes never seen locally (served by another instance) get a swap
        created on the fly from the intent's token diff, provided the diff
        passes the same pair and amount checks as a submitted quote.
        Accepting the same quote twice returns the swap already tracking it.

        Returns:
            The swap, or None if an unknown quote's intent is not supported
        """
        deposit_hash = user_deposit_hash(quote_id, signed_intent)

        if self.store.find_by_quote_id(quote_id) is None:
            diff = self._supported_diff(quote_id, signed_intent)
            if diff is None:
                return None
            token_in, amount_in, token_out, amount_out = diff
        else:
            token_in, amount_in, token_out, amount_out = "", 0, "", 0

        def factory() -> SwapOperation:
            return SwapOperation(
                quote_id=quote_id,
                amount_in=amount_in,
                amount_out=amount_out,
                token_in=token_in,
                token_out=token_out,
                state=FIRST_PROCESSABLE_STATE,
                signed_intent=signed_intent,
                user_deposit_hash=deposit_hash,
            )

        swap, created = self.store.get_or_create(quote_id, factory)
        if created:
            logger.info(f"Created swap {swap.id} for accepted quote {quote_id}")
            return swap

        if swap.state != SwapState.PENDING_ACCEPTANCE:
            logger.info(f"Quote {quote_id} already accepted (swap {swap.id} in {swap.state.value})")
            return swap

        swap.signed_intent = signed_intent
        swap.user_deposit_hash = deposit_hash
        if self.store.reindex(swap.id, SwapState.PENDING_ACCEPTANCE, FIRST_PROCESSABLE_STATE):
            logger.info(f"Quote {quote_id} accepted, swap {swap.id} -> {FIRST_PROCESSABLE_STATE.value}")
        return swap

    def _supported_diff(
        self, quote_id: str, signed_intent: SignedIntent
    ) -> Optional[tuple[str, int, str, int]]:
        """Token diff of an unknown quote's intent, if this solver serves it."""
        diff = extract_token_diff(signed_intent)
        if diff is None:
            logger.warning(f"Rejecting accept for unknown quote {quote_id}: no usable token diff")
            return None

        token_in, amount_in, token_out, amount_out = diff
        quote = QuoteRequest(quote_id, token_in, token_out, exact_amount_in=amount_in)
        if not self.is_supported(quote):
            logger.warning(
                f"Rejecting accept for unknown quote {quote_id}: {token_in} -> {token_out} "
                f"({amount_in}) not supported"
            )
            return None

        # The user may not ask for more than the fee-adjusted amount
        max_out = calculate_amount_out(amount_in, self.fee_percentage)
        if amount_out > max_out:
            logger.warning(
                f"Rejecting accept for unknown quote {quote_id}: amount out {amount_out} "
                f"exceeds {max_out}"
            )
            return None
        return diff
