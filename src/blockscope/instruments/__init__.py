"""Instrument control infrastructure for blockscope.

This package provides:
- The abstract Digitizer interface
- Registry pattern for instrument driver registration
- Mock implementation for simulation/testing
- Hardware driver implementation (PicoScope 6000)
"""

from blockscope.instruments.registry import (
    DigitizerDriver,
    InstrumentRegistry,
)

__all__ = [
    "DigitizerDriver",
    "InstrumentRegistry",
]
