"""Factory for wiring collaborator ports.

Explicitly supplied adapters always win. Otherwise dry-run mode gets the
simulated collaborators; live mode gets the HTTP relay for intents and
requires vault and exchange adapters to be passed in.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from swapsolver.ports.base import (
    ExchangePort,
    IntentPort,
    PortConfigurationError,
    VaultPort,
)

if TYPE_CHECKING:
    from swapsolver.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class Ports:
    """The collaborators handed to the state handlers."""

    vault: VaultPort
    exchange: ExchangePort
    intents: IntentPort


def create_intent_port(settings: "Settings") -> IntentPort:
    """Create the intents relay port."""
    if settings.dry_run:
        from swapsolver.ports.dry_run import DryRunIntentRelay
        return DryRunIntentRelay()

    from swapsolver.ports.relay import IntentRelayClient
    return IntentRelayClient(
        rpc_url=settings.intent_relay_url,
        api_key=settings.intent_relay_api_key,
        timeout=settings.relay_timeout_seconds,
    )


def build_ports(
    settings: "Settings",
    vault: Optional[VaultPort] = None,
    exchange: Optional[ExchangePort] = None,
    intents: Optional[IntentPort] = None,
) -> Ports:
    """Assemble the port set for the engine.

    Raises:
        PortConfigurationError: If live mode lacks a vault or exchange adapter
    """
    if vault is None:
        if not settings.dry_run:
            raise PortConfigurationError("Live mode requires a vault adapter")
        from swapsolver.ports.dry_run import DryRunVault
        vault = DryRunVault()
        logger.warning("Using simulated vault (dry-run mode)")

    if exchange is None:
        if not settings.dry_run:
            raise PortConfigurationError("Live mode requires an exchange adapter")
        from swapsolver.ports.dry_run import DryRunExchange
        exchange = DryRunExchange()
        logger.warning("Using simulated exchange (dry-run mode)")

    if intents is None:
        intents = create_intent_port(settings)

    logger.info(
        f"Ports ready: vault={type(vault).__name__}, exchange={exchange.name}, "
        f"intents={type(intents).__name__}"
    )
    return Ports(vault=vault, exchange=exchange, intents=intents)
