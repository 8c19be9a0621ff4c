"""Tests for quote ingress and acceptance."""

import json
from decimal import Decimal

import pytest

from swapsolver.engine.ingress import (
    QuoteIngress,
    calculate_amount_out,
    extract_token_diff,
    user_deposit_hash,
)
from swapsolver.engine.models import QuoteRequest, SignedIntent, TokenPair
from swapsolver.engine.states import SwapState

TOKEN_IN = "nep141:eth-usdt.omft.near"
TOKEN_OUT = "nep141:tron-usdt.omft.near"


def intent_with_diff(diff: dict) -> SignedIntent:
    payload = {"intents": [{"intent": "token_diff", "diff": diff}]}
    return SignedIntent(standard="erc191", payload=json.dumps(payload), signature="sig")


@pytest.fixture
def ingress(store) -> QuoteIngress:
    return QuoteIngress(
        store,
        pairs=[TokenPair(TOKEN_IN, TOKEN_OUT, min_amount=5_000_000, max_amount=1_000_000_000)],
        fee_percentage=Decimal("0.1"),
    )


def quote(quote_id: str = "q1", amount: int = 10_000_000, token_in: str = TOKEN_IN) -> QuoteRequest:
    return QuoteRequest(quote_id, token_in, TOKEN_OUT, exact_amount_in=amount)


class TestFees:
    """Amount out calculation."""

    def test_ten_percent_fee(self):
        assert calculate_amount_out(10_000_000, Decimal("0.1")) == 9_000_000

    def test_zero_fee(self):
        assert calculate_amount_out(10_000_000, Decimal("0")) == 10_000_000

    def test_fee_rounds_down(self):
        # 0.1% of 1_999 is 1.999, charged as 1
        assert calculate_amount_out(1_999, Decimal("0.001")) == 1_998

    def test_fee_rate_truncated_to_six_decimals(self):
        assert calculate_amount_out(1_000_000, Decimal("0.0000019")) == 999_999


class TestSubmitQuote:
    """Quote filtering and deduplication."""

    def test_supported_quote_tracked(self, ingress, store):
        swap = ingress.submit_quote(quote())

        assert swap is not None
        assert swap.state == SwapState.PENDING_ACCEPTANCE
        assert swap.amount_in == 10_000_000
        assert swap.amount_out == 9_000_000
        assert store.find_by_quote_id("q1") is swap

    def test_unsupported_pair_ignored(self, ingress, store):
        assert ingress.submit_quote(quote(token_in="nep141:wrap.near")) is None
        assert len(store) == 0

    def test_amount_below_minimum_ignored(self, ingress, store):
        assert ingress.submit_quote(quote(amount=4_999_999)) is None
        assert len(store) == 0

    def test_amount_above_maximum_ignored(self, ingress):
        assert ingress.submit_quote(quote(amount=1_000_000_001)) is None

    def test_exact_amount_out_quote_ignored(self, ingress):
        request = QuoteRequest("q1", TOKEN_IN, TOKEN_OUT, exact_amount_out=10_000_000)

        assert ingress.submit_quote(request) is None

    def test_duplicate_quote_returns_existing(self, ingress, store):
        first = ingress.submit_quote(quote())
        second = ingress.submit_quote(quote())

        assert first is second
        assert len(store) == 1


class TestAcceptQuote:
    """User acceptance of a tracked or unknown quote."""

    def test_accept_makes_swap_processable(self, ingress, store):
        swap = ingress.submit_quote(quote())
        intent = intent_with_diff({TOKEN_IN: "-10000000", TOKEN_OUT: "9000000"})

        accepted = ingress.accept_quote("q1", intent)

        assert accepted is swap
        assert swap.state == SwapState.QUOTE_ACCEPTED
        assert swap.signed_intent is intent
        assert swap.user_deposit_hash == user_deposit_hash("q1", intent)
        assert store.all_ids_in_state(SwapState.PENDING_ACCEPTANCE) == []
        assert store.all_ids_in_state(SwapState.QUOTE_ACCEPTED) == [swap.id]

    def test_accept_twice_is_idempotent(self, ingress, store):
        ingress.submit_quote(quote())
        intent = intent_with_diff({TOKEN_IN: "-10000000", TOKEN_OUT: "9000000"})

        first = ingress.accept_quote("q1", intent)
        store.reindex(first.id, SwapState.QUOTE_ACCEPTED, SwapState.INTENT_CREATED)
        second = ingress.accept_quote("q1", intent)

        assert first is second
        assert second.state == SwapState.INTENT_CREATED
        assert len(store) == 1

    def test_accept_unknown_quote_uses_token_diff(self, ingress, store):
        intent = intent_with_diff({TOKEN_IN: "-20000000", TOKEN_OUT: "18000000"})

        swap = ingress.accept_quote("remote-q", intent)

        assert swap.state == SwapState.QUOTE_ACCEPTED
        assert swap.token_in == TOKEN_IN
        assert swap.token_out == TOKEN_OUT
        assert swap.amount_in == 20_000_000
        assert swap.amount_out == 18_000_000
        assert store.find_by_quote_id("remote-q") is swap

    def test_accept_unknown_quote_without_diff_rejected(self, ingress, store):
        intent = SignedIntent(standard="erc191", payload="not json", signature="sig")

        assert ingress.accept_quote("remote-q", intent) is None
        assert len(store) == 0

    def test_accept_unknown_quote_unsupported_pair_rejected(self, ingress, store):
        intent = intent_with_diff({"nep141:junk.near": "-1", "nep141:wbtc.near": "999999999999"})

        assert ingress.accept_quote("remote-q", intent) is None
        assert len(store) == 0
        assert store.all_ids_in_state(SwapState.QUOTE_ACCEPTED) == []

    def test_accept_unknown_quote_below_minimum_rejected(self, ingress, store):
        intent = intent_with_diff({TOKEN_IN: "-4999999", TOKEN_OUT: "4499999"})

        assert ingress.accept_quote("remote-q", intent) is None
        assert len(store) == 0

    def test_accept_unknown_quote_above_maximum_rejected(self, ingress, store):
        intent = intent_with_diff({TOKEN_IN: "-2000000000", TOKEN_OUT: "1800000000"})

        assert ingress.accept_quote("remote-q", intent) is None
        assert len(store) == 0

    def test_accept_unknown_quote_asking_more_than_fee_allows_rejected(self, ingress, store):
        intent = intent_with_diff({TOKEN_IN: "-20000000", TOKEN_OUT: "19000000"})

        assert ingress.accept_quote("remote-q", intent) is None
        assert len(store) == 0

    def test_known_quote_accepted_regardless_of_payload(self, ingress):
        swap = ingress.submit_quote(quote())
        intent = SignedIntent(standard="erc191", payload="{}", signature="sig")

        assert ingress.accept_quote("q1", intent) is swap
        assert swap.state == SwapState.QUOTE_ACCEPTED


class TestIntentParsing:
    """Token diff extraction and deposit hashing."""

    def test_extract_token_diff(self):
        intent = intent_with_diff({TOKEN_IN: "-100", TOKEN_OUT: "90"})

        assert extract_token_diff(intent) == (TOKEN_IN, 100, TOKEN_OUT, 90)

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            json.dumps({"intents": []}),
            json.dumps({"intents": [{"intent": "transfer"}]}),
            json.dumps({"intents": [{"diff": {"a": "-1", "b": "-2"}}]}),
            json.dumps({"intents": [{"diff": {"a": "oops", "b": "2"}}]}),
        ],
    )
    def test_unusable_payloads(self, payload):
        intent = SignedIntent(standard="erc191", payload=payload, signature="sig")

        assert extract_token_diff(intent) is None

    def test_deposit_hash_is_deterministic(self):
        intent = intent_with_diff({TOKEN_IN: "-100", TOKEN_OUT: "90"})

        assert user_deposit_hash("q1", intent) == user_deposit_hash("q1", intent)
        assert user_deposit_hash("q1", intent) != user_deposit_hash("q2", intent)
        assert len(user_deposit_hash("q1", intent)) == 64
