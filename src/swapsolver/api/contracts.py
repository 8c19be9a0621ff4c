"""Request/response contracts for the solver HTTP API.

Amounts are token base units carried as decimal strings so they survive
JSON clients that cannot represent large integers.
"""

from typing import Optional

from pydantic import BaseModel, Field

from swapsolver.engine.models import QuoteRequest, SignedIntent, SwapOperation


class QuoteRequestModel(BaseModel):
    """Quote request forwarded by the relay listener."""

    quote_id: str = Field(..., min_length=1, description="Relay quote id")
    defuse_asset_identifier_in: str = Field(..., description="Asset the user sends")
    defuse_asset_identifier_out: str = Field(..., description="Asset the user receives")
    exact_amount_in: Optional[str] = Field(None, pattern=r"^\d+$", description="Amount in (base units)")
    exact_amount_out: Optional[str] = Field(None, pattern=r"^\d+$", description="Amount out (base units)")
    min_deadline_ms: Optional[int] = Field(None, ge=0, description="Minimum quote deadline")

    def to_quote(self) -> QuoteRequest:
        return QuoteRequest(
            quote_id=self.quote_id,
            token_in=self.defuse_asset_identifier_in,
            token_out=self.defuse_asset_identifier_out,
            exact_amount_in=int(self.exact_amount_in) if self.exact_amount_in else None,
            exact_amount_out=int(self.exact_amount_out) if self.exact_amount_out else None,
            min_deadline_ms=self.min_deadline_ms,
        )


class SignedDataModel(BaseModel):
    """User-signed intent."""

    standard: str = Field(..., description="Signing standard, e.g. erc191")
    payload: str = Field(..., description="JSON intent message")
    signature: str = Field(..., description="Signature over the payload")

    def to_intent(self) -> SignedIntent:
        return SignedIntent(standard=self.standard, payload=self.payload, signature=self.signature)


class AcceptQuoteRequest(BaseModel):
    """Body of an accept-quote call."""

    signed_data: SignedDataModel


class SwapResponse(BaseModel):
    """Public view of a swap operation."""

    id: str
    quote_id: str
    state: str
    amount_in: str
    amount_out: str
    token_in: str
    token_out: str
    created_at: float
    updated_at: float
    retries: int = 0
    user_deposit_hash: Optional[str] = None
    intent_index: Optional[str] = None
    cex_deposit_ref: Optional[str] = None
    cex_order_ref: Optional[str] = None
    cex_withdraw_ref: Optional[str] = None
    user_deposit_ref: Optional[str] = None
    swap_back_order_ref: Optional[str] = None
    intent_hash: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_swap(cls, swap: SwapOperation) -> "SwapResponse":
        return cls(**swap.to_dict())


class SubmitQuoteResponse(BaseModel):
    """Result of submitting a quote."""

    accepted: bool = Field(..., description="False if the pair/amount is not served")
    swap: Optional[SwapResponse] = None


class StatsResponse(BaseModel):
    """Swap counts for monitoring."""

    total: int
    in_flight: int
    by_state: dict[str, int]
