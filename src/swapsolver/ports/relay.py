"""Solver relay client for executing user intents over JSON-RPC.

Error mapping:
- transport errors, timeouts, HTTP 429 and 5xx -> TransientPortError
- other HTTP 4xx, JSON-RPC errors, non-OK publish status -> PermanentPortError
"""

import itertools
import json
import logging
from typing import Optional

import httpx

from swapsolver.engine.models import SignedIntent
from swapsolver.ports.base import (
    IntentPort,
    IntentResult,
    PermanentPortError,
    TransientPortError,
)

logger = logging.getLogger(__name__)

SUPPORTED_STANDARDS = ("erc191",)


class IntentRelayClient(IntentPort):
    """Publishes signed intents to the solver relay."""

    def __init__(
        self,
        rpc_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the relay client.

        Args:
            rpc_url: JSON-RPC endpoint of the relay
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        self.rpc_url = rpc_url
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._ids = itertools.count(1)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _call(self, method: str, params: list) -> dict:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.rpc_url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransientPortError(f"{method} timed out: {e}", port="relay")
        except httpx.TransportError as e:
            raise TransientPortError(f"{method} transport error: {type(e).__name__}: {e}", port="relay")

        if resp.status_code == 429 or resp.status_code >= 500:
            raise TransientPortError(f"{method} returned HTTP {resp.status_code}", port="relay")
        if resp.status_code >= 400:
            raise PermanentPortError(
                f"{method} rejected with HTTP {resp.status_code}: {resp.text[:200]}", port="relay"
            )

        try:
            data = resp.json()
        except ValueError:
            raise TransientPortError(f"{method} returned a non-JSON body", port="relay")

        if data.get("error"):
            error = data["error"]
            message = error.get("message", error) if isinstance(error, dict) else error
            raise PermanentPortError(f"{method} failed: {message}", port="relay")

        return data.get("result") or {}

    async def execute(self, signed_intent: SignedIntent) -> IntentResult:
        if signed_intent.standard not in SUPPORTED_STANDARDS:
            raise PermanentPortError(
                f"Only {', '.join(SUPPORTED_STANDARDS)} intents are supported, "
                f"got {signed_intent.standard}",
                port="relay",
            )
        try:
            json.loads(signed_intent.payload)
        except ValueError:
            raise PermanentPortError("Invalid user intent payload", port="relay")

        logger.debug(f"Publishing intent to {self.rpc_url}")
        result = await self._call(
            "publish_intent",
            [{"quote_hashes": [], "signed_data": signed_intent.to_dict()}],
        )

        status = result.get("status", "")
        if status != "OK":
            reason = result.get("reason") or status or "unknown"
            raise PermanentPortError(f"Intent rejected by relay: {reason}", port="relay")

        intent_hash = result.get("intent_hash")
        logger.info(f"Intent published: {intent_hash}")
        return IntentResult(success=True, intent_hash=intent_hash, status=status, details=result)
