"""Swapsolver - borrowed-liquidity cross-venue swap solver."""

__version__ = "0.1.0"
