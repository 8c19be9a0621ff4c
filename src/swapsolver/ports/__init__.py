"""Collaborator ports: vault, exchange and intents relay."""

from swapsolver.ports.base import (
    ExchangePort,
    IntentPort,
    IntentResult,
    PermanentPortError,
    PortConfigurationError,
    PortError,
    TransientPortError,
    VaultPort,
)
from swapsolver.ports.factory import Ports, build_ports

__all__ = [
    "ExchangePort",
    "IntentPort",
    "IntentResult",
    "PermanentPortError",
    "PortConfigurationError",
    "PortError",
    "Ports",
    "TransientPortError",
    "VaultPort",
    "build_ports",
]
