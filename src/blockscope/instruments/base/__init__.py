"""Base classes for instrument drivers."""

from blockscope.instruments.base.digitizer import Digitizer

__all__ = [
    "Digitizer",
]
