"""Central registry for digitizer implementations.

This module provides a registration system for Digitizer implementations,
allowing new instrument types to be added without modifying factory code.

Usage:
    @InstrumentRegistry.register_digitizer("my_digitizer_driver")
    class MyDigitizer(Digitizer):
        ...
"""

import logging
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class DigitizerDriver(Enum):
    """Supported digitizer driver types.

    Add new drivers here when implementing support for new instruments.
    """

    MOCK = "mock"
    PICOSCOPE_6000 = "picoscope_6000"


class InstrumentRegistry:
    """Registry for Digitizer implementations.

    This class provides a central registry for digitizer implementations,
    using decorators for registration and a factory method for instantiation.

    Example:
        # Register an implementation
        @InstrumentRegistry.register_digitizer("my_driver")
        class MyDigitizer(Digitizer):
            def __init__(self, config: dict, **kwargs):
                ...

        # Create an instance
        digitizer = InstrumentRegistry.create_digitizer("my_driver", config_dict)
    """

    _digitizer_registry: dict[str, type] = {}

    @classmethod
    def register_digitizer(cls, driver_key: str):
        """Decorator to register a Digitizer implementation.

        Args:
            driver_key: Unique identifier for the driver (should match
                       a DigitizerDriver enum value).

        Returns:
            Decorator function that registers the class.
        """

        def decorator(impl_class: type) -> type:
            if driver_key in cls._digitizer_registry:
                logger.warning(
                    "Digitizer driver '%s' already registered, overwriting with %s",
                    driver_key,
                    impl_class.__name__,
                )
            cls._digitizer_registry[driver_key] = impl_class
            logger.debug(
                "Registered digitizer driver: %s -> %s",
                driver_key,
                impl_class.__name__,
            )
            return impl_class

        return decorator

    @classmethod
    def create_digitizer(cls, driver_key: str, config: dict, **kwargs) -> Any:
        """Create a Digitizer instance from the registry.

        Args:
            driver_key: The registered driver key (e.g., "picoscope_6000").
            config: Configuration dictionary with serial, parameters, etc.
            **kwargs: Additional arguments passed to the implementation constructor.

        Returns:
            An instance of Digitizer.

        Raises:
            ValueError: If the driver_key is not registered.
        """
        impl_class = cls._digitizer_registry.get(driver_key)
        if impl_class is None:
            available = list(cls._digitizer_registry.keys())
            raise ValueError(
                f"Unknown digitizer driver: '{driver_key}'. "
                f"Available drivers: {available}"
            )
        logger.info(
            "Creating digitizer instance: %s (%s)", driver_key, impl_class.__name__
        )
        return impl_class(config=config, **kwargs)

    @classmethod
    def get_registered_digitizer_drivers(cls) -> list[str]:
        """Get list of currently registered digitizer driver keys."""
        return list(cls._digitizer_registry.keys())
