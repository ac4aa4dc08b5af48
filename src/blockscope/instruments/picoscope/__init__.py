"""PicoScope digitizer implementations.

This package contains the Digitizer implementation for the PicoScope 6000
series. The vendor SDK wrappers are only imported once a device is used.
"""

# Import implementations to trigger registration with InstrumentRegistry
from blockscope.instruments.picoscope.ps6000 import PicoScope6000

__all__ = [
    "PicoScope6000",
]
