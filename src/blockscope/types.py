"""Value types shared by the timebase, capture and spectrum components.

The enum values follow the PicoScope 6000 series driver so that the
hardware binding can pass them straight through.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

import numpy as np


class Status(IntEnum):
    """Driver status codes. Anything other than OK is a failure."""

    OK = 0x00
    MAX_UNITS_OPENED = 0x01
    MEMORY_FAIL = 0x02
    NOT_FOUND = 0x03
    FW_FAIL = 0x04
    OPEN_OPERATION_IN_PROGRESS = 0x05
    OPERATION_FAILED = 0x06
    NOT_RESPONDING = 0x07
    CONFIG_FAIL = 0x08
    INVALID_HANDLE = 0x0C
    INVALID_PARAMETER = 0x0D
    INVALID_TIMEBASE = 0x0E
    INVALID_VOLTAGE_RANGE = 0x0F
    INVALID_CHANNEL = 0x10

    @classmethod
    def describe(cls, code: int) -> str:
        """Return a readable name for a raw status code."""
        try:
            return cls(code).name
        except ValueError:
            return f"0x{int(code):08X}"


class Channel(IntEnum):
    A = 0
    B = 1
    C = 2
    D = 3


class Coupling(IntEnum):
    AC = 0
    DC_1M = 1
    DC_50R = 2


class VoltageRange(IntEnum):
    """Input ranges, valued by driver range index."""

    R_10MV = 0
    R_20MV = 1
    R_50MV = 2
    R_100MV = 3
    R_200MV = 4
    R_500MV = 5
    R_1V = 6
    R_2V = 7
    R_5V = 8
    R_10V = 9
    R_20V = 10
    R_50V = 11

    @property
    def full_scale_mv(self) -> float:
        return _FULL_SCALE_MV[self]


_FULL_SCALE_MV = {
    VoltageRange.R_10MV: 10.0,
    VoltageRange.R_20MV: 20.0,
    VoltageRange.R_50MV: 50.0,
    VoltageRange.R_100MV: 100.0,
    VoltageRange.R_200MV: 200.0,
    VoltageRange.R_500MV: 500.0,
    VoltageRange.R_1V: 1000.0,
    VoltageRange.R_2V: 2000.0,
    VoltageRange.R_5V: 5000.0,
    VoltageRange.R_10V: 10000.0,
    VoltageRange.R_20V: 20000.0,
    VoltageRange.R_50V: 50000.0,
}


class BandwidthLimit(IntEnum):
    FULL = 0
    BW_20MHZ = 1
    BW_25MHZ = 2


class ThresholdDirection(IntEnum):
    ABOVE = 0
    BELOW = 1
    RISING = 2
    FALLING = 3
    RISING_OR_FALLING = 4


class DownsamplingMode(IntEnum):
    NONE = 0
    AGGREGATE = 1
    AVERAGE = 2
    DECIMATE = 4


class CaptureMode(Enum):
    """How the capture session waits for the device to finish."""

    BLOCKING = "blocking"
    POLLING = "polling"


@dataclass(frozen=True)
class TimebaseQuery:
    candidate_index: int
    segment_index: int = 0


@dataclass(frozen=True)
class TimebaseResult:
    """Outcome of a successful timebase negotiation.

    Attributes:
        timebase_index: The index the driver accepted.
        interval_ns: Sampling interval in nanoseconds.
        max_samples: Sample capacity of the segment at this timebase.
    """

    timebase_index: int
    interval_ns: float
    max_samples: int

    @property
    def sample_rate(self) -> float:
        """Sampling rate in Hz."""
        return 1 / (self.interval_ns * 1e-9)


@dataclass(frozen=True)
class ChannelConfig:
    channel: Channel
    enabled: bool = True
    coupling: Coupling = Coupling.DC_1M
    voltage_range: VoltageRange = VoltageRange.R_5V
    analogue_offset: float = 0.0
    bandwidth_limit: BandwidthLimit = BandwidthLimit.FULL


# The driver takes the auto-trigger delay as a signed 16-bit value
MAX_AUTO_TRIGGER_MS = 32767


@dataclass(frozen=True)
class TriggerConfig:
    """Simple edge trigger on one source channel.

    ``auto_trigger_ms`` of 0 makes the device wait for a trigger forever.
    """

    channel: Channel = Channel.A
    threshold_mv: float = 500.0
    direction: ThresholdDirection = ThresholdDirection.RISING
    auto_trigger_ms: int = 1000
    delay_samples: int = 0

    def __post_init__(self):
        if not 0 <= self.auto_trigger_ms <= MAX_AUTO_TRIGGER_MS:
            raise ValueError(
                f"auto_trigger_ms must be in [0, {MAX_AUTO_TRIGGER_MS}], "
                f"got {self.auto_trigger_ms}"
            )


@dataclass(frozen=True)
class BlockRequest:
    pre_trigger_samples: int
    post_trigger_samples: int
    segment_index: int = 0

    @property
    def total_samples(self) -> int:
        return self.pre_trigger_samples + self.post_trigger_samples


@dataclass
class CaptureResult:
    """Raw samples retrieved from one block capture.

    Attributes:
        samples: ADC counts per enabled channel.
        num_samples_returned: Samples the driver actually returned, which
            may be fewer than requested.
        overflow: Channels whose input range was exceeded.
        interval_ns: Sampling interval the capture ran at.
        pre_trigger_samples: Samples recorded before the trigger event.
    """

    samples: dict[Channel, np.ndarray]
    num_samples_returned: int
    overflow: frozenset = field(default_factory=frozenset)
    interval_ns: float = 0.0
    pre_trigger_samples: int = 0

    def trace(self, channel: Channel) -> np.ndarray:
        return self.samples[channel][: self.num_samples_returned]

    def time_axis_ns(self) -> np.ndarray:
        """Sample times in nanoseconds, starting at the first sample."""
        return self.interval_ns * np.arange(self.num_samples_returned, dtype=float)


@dataclass(frozen=True)
class SpectrumResult:
    """Single-sided amplitude spectrum.

    Attributes:
        frequencies: Bin frequencies in Hz, from 0 to at most Fs/2.
        magnitudes: Amplitude at each bin, in the unit of the input.
        nfft: Transform length after zero padding.
        sample_rate: Sampling rate in Hz.
    """

    frequencies: np.ndarray
    magnitudes: np.ndarray
    nfft: int
    sample_rate: float

    @property
    def bin_width(self) -> float:
        return self.sample_rate / self.nfft

    def truncate(self, fraction: float) -> "SpectrumResult":
        """Keep only the lowest ``fraction`` of the spectrum.

        Retains ``floor(nfft / 2 * fraction) + 1`` bins.
        """
        if not 0 < fraction <= 1:
            raise ValueError(f"fraction must be in (0, 1], got {fraction}")
        keep = int(np.floor((self.nfft / 2) * fraction)) + 1
        keep = min(keep, len(self.frequencies))
        return SpectrumResult(
            frequencies=self.frequencies[:keep],
            magnitudes=self.magnitudes[:keep],
            nfft=self.nfft,
            sample_rate=self.sample_rate,
        )
