"""Digitizer Factory for creating Digitizer instances based on configuration.

This module provides the DigitizerFactory class that creates appropriate
Digitizer implementations based on configuration using the InstrumentRegistry.
"""

import logging

from blockscope.config import DriverConfig
from blockscope.instruments.base.digitizer import Digitizer
from blockscope.instruments.registry import InstrumentRegistry

# Import implementations to trigger registration with InstrumentRegistry
import blockscope.instruments.mock  # noqa: F401
import blockscope.instruments.picoscope  # noqa: F401

logger = logging.getLogger(__name__)


class DigitizerFactory:
    """Factory class for creating Digitizer instances.

    This factory supports two main use cases:
    1. From a DriverConfig dataclass
    2. From a configuration dictionary

    The factory uses InstrumentRegistry to create the appropriate
    implementation based on the driver_type.
    """

    @classmethod
    def create_from_config(cls, driver_config: DriverConfig) -> Digitizer:
        """Create Digitizer instance from a DriverConfig.

        Args:
            driver_config: Driver section of an AcquisitionConfig.

        Returns:
            Digitizer: Digitizer instance
        """
        return cls.create_from_config_dict(driver_config.to_instrument_config())

    @classmethod
    def create_from_config_dict(cls, config_dict: dict) -> Digitizer:
        """Create Digitizer instance from a configuration dictionary.

        Args:
            config_dict: Configuration dictionary with:
                - driver_type: Driver key (e.g., "mock", "picoscope_6000")
                - serial: Serial number for real instruments
                - parameters: Optional instrument parameters

        Returns:
            Digitizer: Digitizer instance
        """
        driver_key = config_dict.get("driver_type", "mock")

        logger.info("Creating digitizer from config dict: driver=%s", driver_key)
        return InstrumentRegistry.create_digitizer(driver_key, config_dict)


def create_mock_digitizer(parameters: dict | None = None, **kwargs) -> Digitizer:
    """Convenience function to create a mock Digitizer instance.

    Returns:
        Digitizer: Mock Digitizer instance for simulation
    """
    return InstrumentRegistry.create_digitizer(
        "mock", {"parameters": parameters or {}}, **kwargs
    )
