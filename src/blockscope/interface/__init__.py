"""Factory interfaces for instrument creation.

This package provides the factory class for creating Digitizer
instances based on configuration.
"""

from blockscope.interface.digitizer import DigitizerFactory, create_mock_digitizer

__all__ = [
    "DigitizerFactory",
    "create_mock_digitizer",
]
