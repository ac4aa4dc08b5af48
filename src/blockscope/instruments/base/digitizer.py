"""Abstract base class for block-capture digitizers.

This module defines the Digitizer abstract base class that all digitizer
implementations must inherit from. Concrete implementations can be found in:
- blockscope.instruments.mock.MockDigitizer (for simulation)
- blockscope.instruments.picoscope.ps6000 (for PicoScope 6000 hardware)

Every device call returns a raw driver status code instead of raising, so
that callers decide which statuses are recoverable.
"""

import logging
import time
from abc import ABC, abstractmethod

import numpy as np

from blockscope.types import (
    BandwidthLimit,
    Channel,
    Coupling,
    DownsamplingMode,
    Status,
    ThresholdDirection,
    VoltageRange,
)

logger = logging.getLogger(__name__)


class Digitizer(ABC):
    """Abstract base class for digitizers that capture blocks of samples.

    Defines the interface that all Digitizer implementations must follow.

    Attributes:
        MAX_TIMEBASE_INDEX: Largest timebase index the driver understands.
        MAX_ADC_VALUE: ADC count corresponding to the full scale of a range.
        READY_POLL_INTERVAL: Seconds between is_ready polls in the default
            wait_until_ready.

    Methods:
        connect: Open the device.
        disconnect: Close the device.
        set_channel: Configure one analogue input.
        get_timebase: Query interval and capacity for a timebase index.
        set_simple_trigger: Configure an edge trigger.
        run_block: Start a block capture.
        is_ready: Poll whether the capture has completed.
        wait_until_ready: Block until the capture has completed.
        get_block_data: Retrieve the captured samples.
        stop: Stop any capture in progress.
    """

    MAX_TIMEBASE_INDEX: int = 2**32 - 1
    MAX_ADC_VALUE: int = 32512
    READY_POLL_INTERVAL: float = 0.001

    @abstractmethod
    def connect(self):
        """Open the connection to the device."""
        raise NotImplementedError

    @abstractmethod
    def disconnect(self):
        """Close the connection to the device."""
        raise NotImplementedError

    @property
    @abstractmethod
    def instrument_model(self) -> str:
        """Model identifier reported by the device, e.g. ``"6407"``."""
        raise NotImplementedError

    @abstractmethod
    def set_channel(
        self,
        channel: Channel,
        enabled: bool,
        coupling: Coupling,
        voltage_range: VoltageRange,
        analogue_offset: float,
        bandwidth_limit: BandwidthLimit,
    ) -> int:
        """Configure one analogue input channel.

        Returns:
            Driver status code.
        """
        raise NotImplementedError

    @abstractmethod
    def get_timebase(
        self, index: int, segment_index: int, num_samples: int = 0
    ) -> tuple[int, float, int]:
        """Ask the driver whether a timebase index is usable.

        Returns:
            Tuple of (status, interval_ns, max_samples). The interval and
            capacity are only meaningful when status is OK.
        """
        raise NotImplementedError

    @abstractmethod
    def set_simple_trigger(
        self,
        channel: Channel,
        threshold_mv: float,
        direction: ThresholdDirection,
        delay: int,
        auto_trigger_ms: int,
    ) -> int:
        """Configure a simple edge trigger.

        Returns:
            Driver status code.
        """
        raise NotImplementedError

    @abstractmethod
    def run_block(
        self,
        pre_trigger_samples: int,
        post_trigger_samples: int,
        timebase_index: int,
        segment_index: int,
    ) -> int:
        """Start a block capture. Returns immediately.

        Returns:
            Driver status code.
        """
        raise NotImplementedError

    @abstractmethod
    def is_ready(self) -> bool:
        """Return True once the capture started by run_block has finished."""
        raise NotImplementedError

    def wait_until_ready(self) -> int:
        """Block until the capture has finished.

        Drivers with a native blocking wait should override this.

        Returns:
            Driver status code.
        """
        while not self.is_ready():
            time.sleep(self.READY_POLL_INTERVAL)
        return Status.OK

    @abstractmethod
    def get_block_data(
        self,
        start_index: int,
        segment_index: int,
        downsampling_ratio: int,
        downsampling_mode: DownsamplingMode,
    ) -> tuple[int, int, int, dict[Channel, np.ndarray]]:
        """Retrieve the captured samples of every enabled channel.

        Returns:
            Tuple of (status, num_samples, overflow_bits, buffers) where bit
            n of overflow_bits is set when channel n went over range.
        """
        raise NotImplementedError

    @abstractmethod
    def stop(self) -> int:
        """Stop the device. Safe to call when no capture is running.

        Returns:
            Driver status code.
        """
        raise NotImplementedError
