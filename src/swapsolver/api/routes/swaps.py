"""Ingress and introspection endpoints for swaps."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from swapsolver.api.contracts import (
    AcceptQuoteRequest,
    QuoteRequestModel,
    StatsResponse,
    SubmitQuoteResponse,
    SwapResponse,
)
from swapsolver.engine.processor import SwapEngine
from swapsolver.engine.states import SwapState

router = APIRouter()


def get_engine(request: Request) -> SwapEngine:
    return request.app.state.engine


@router.post("/quotes", response_model=SubmitQuoteResponse, status_code=202)
async def submit_quote(body: QuoteRequestModel, request: Request) -> SubmitQuoteResponse:
    """Track a quote request. Unsupported pairs are filtered, not errors."""
    swap = get_engine(request).submit_quote(body.to_quote())
    if swap is None:
        return SubmitQuoteResponse(accepted=False)
    return SubmitQuoteResponse(accepted=True, swap=SwapResponse.from_swap(swap))


@router.post("/quotes/{quote_id}/accept", response_model=SwapResponse, status_code=202)
async def accept_quote(quote_id: str, body: AcceptQuoteRequest, request: Request) -> SwapResponse:
    """Attach the user's signed intent; processing continues in the background."""
    swap = get_engine(request).accept_quote(quote_id, body.signed_data.to_intent())
    if swap is None:
        raise HTTPException(status_code=422, detail=f"Quote {quote_id} is not supported")
    return SwapResponse.from_swap(swap)


@router.get("/swaps/{swap_id}", response_model=SwapResponse)
async def get_swap(swap_id: str, request: Request) -> SwapResponse:
    swap = get_engine(request).get_swap(swap_id)
    if swap is None:
        raise HTTPException(status_code=404, detail=f"Swap {swap_id} not found")
    return SwapResponse.from_swap(swap)


@router.get("/swaps", response_model=list[SwapResponse])
async def list_swaps(request: Request, state: Optional[SwapState] = None) -> list[SwapResponse]:
    """List swaps, optionally filtered by state."""
    engine = get_engine(request)
    if state is None:
        swaps = [swap for s in SwapState for swap in engine.get_swaps_by_state(s)]
    else:
        swaps = engine.get_swaps_by_state(state)
    swaps.sort(key=lambda s: s.created_at)
    return [SwapResponse.from_swap(swap) for swap in swaps]


@router.get("/stats", response_model=StatsResponse)
async def get_stats(request: Request) -> StatsResponse:
    return StatsResponse(**get_engine(request).get_stats())
