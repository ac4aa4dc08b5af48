"""Mock digitizer implementation for simulation and testing.

This module provides a Digitizer that synthesizes a test signal instead of
talking to hardware. Its timebase table, capacity, truncation and failure
behaviour are configurable so that the capture pipeline can be exercised
end to end without a device attached.
"""

import logging
from collections import Counter

import numpy as np

from blockscope.instruments.base.digitizer import Digitizer
from blockscope.instruments.registry import InstrumentRegistry
from blockscope.types import (
    BandwidthLimit,
    Channel,
    ChannelConfig,
    Coupling,
    DownsamplingMode,
    Status,
    ThresholdDirection,
    TriggerConfig,
    VoltageRange,
)

logger = logging.getLogger(__name__)


def ps6000_interval_ns(index: int) -> float:
    """Sampling interval of a PicoScope 6000 timebase index."""
    if index < 5:
        return 2**index / 5e9 * 1e9
    return (index - 4) / 156250000 * 1e9


@InstrumentRegistry.register_digitizer("mock")
class MockDigitizer(Digitizer):
    """Mock Digitizer implementation for simulation and testing.

    Uses configuration parameters to define the simulated device and
    generates a periodic signal on every enabled channel when data is
    retrieved.

    Args:
        config: Configuration dictionary with optional parameters:
            - parameters: Dict with settings like:
                - model: Reported instrument model
                - timebase.first_valid_index: Lowest accepted timebase index
                - timebase.last_valid_index: Highest accepted timebase index
                - timebase.interval_ns: Fixed interval for every index
                - memory.max_samples: Segment capacity
                - signal.shape: "square" or "sine"
                - signal.frequency: Signal frequency in Hz
                - signal.amplitude_mv: Signal amplitude in mV
                - signal.noise_mv: Standard deviation of added noise in mV
                - capture.polls_until_ready: is_ready() calls before ready
                - capture.truncate_to: Maximum samples returned
        fail_on: Optional mapping of method name to the status it should
            return instead of OK, for fault injection.
        **kwargs: Additional arguments (ignored).
    """

    # Default configuration values
    DEFAULT_MODEL = "6403D"
    DEFAULT_MAX_SAMPLES = 1_000_000
    DEFAULT_SIGNAL_FREQUENCY = 50.0
    DEFAULT_SIGNAL_AMPLITUDE_MV = 2000.0

    def __init__(self, config: dict = None, fail_on: dict = None, **kwargs):
        self._config = config or {}
        self.fail_on = dict(fail_on or {})
        self.calls = Counter()
        self.connected = False
        self.running = False
        self.channels: dict[Channel, ChannelConfig] = {}
        self.trigger: TriggerConfig | None = None
        self._block = None
        self._polls = 0
        self._rng = np.random.default_rng(12345)

        self._configure()
        logger.info("MockDigitizer initialized (simulation mode)")

    def _configure(self):
        """Configure the mock digitizer from the config dictionary."""
        self.model = str(self._get_parameter_value("model", self.DEFAULT_MODEL))
        self.first_valid_index = int(
            self._get_parameter_value("timebase.first_valid_index", 0)
        )
        self.last_valid_index = int(
            self._get_parameter_value(
                "timebase.last_valid_index", self.MAX_TIMEBASE_INDEX
            )
        )
        self.fixed_interval_ns = self._get_parameter_value("timebase.interval_ns")
        self.max_samples = int(
            self._get_parameter_value("memory.max_samples", self.DEFAULT_MAX_SAMPLES)
        )
        self.signal_shape = self._get_parameter_value("signal.shape", "square")
        self.signal_frequency = float(
            self._get_parameter_value(
                "signal.frequency", self.DEFAULT_SIGNAL_FREQUENCY
            )
        )
        self.signal_amplitude_mv = float(
            self._get_parameter_value(
                "signal.amplitude_mv", self.DEFAULT_SIGNAL_AMPLITUDE_MV
            )
        )
        self.noise_mv = float(self._get_parameter_value("signal.noise_mv", 0.0))
        self.polls_until_ready = int(
            self._get_parameter_value("capture.polls_until_ready", 3)
        )
        self.truncate_to = self._get_parameter_value("capture.truncate_to")

    def _get_parameter_value(self, param_path: str, default=None):
        """Extract a parameter value from the configuration.

        Values may be given directly or as ``{"initial_value": ...}``.
        """
        parameters = self._config.get("parameters", {})
        if param_path in parameters:
            param = parameters[param_path]
            if isinstance(param, dict):
                return param.get("initial_value", default)
            return param
        return default

    def _record(self, name: str) -> int:
        self.calls[name] += 1
        if not self.connected and name != "stop":
            return Status.INVALID_HANDLE
        return self.fail_on.get(name, Status.OK)

    @property
    def instrument_model(self) -> str:
        return self.model

    def connect(self):
        self.connected = True
        logger.info("Mock digitizer %s connected", self.model)

    def disconnect(self):
        self.connected = False
        self.running = False
        logger.info("Mock digitizer disconnected")

    def set_channel(
        self,
        channel: Channel,
        enabled: bool,
        coupling: Coupling,
        voltage_range: VoltageRange,
        analogue_offset: float,
        bandwidth_limit: BandwidthLimit,
    ) -> int:
        status = self._record("set_channel")
        if status == Status.OK:
            self.channels[Channel(channel)] = ChannelConfig(
                channel=Channel(channel),
                enabled=bool(enabled),
                coupling=Coupling(coupling),
                voltage_range=VoltageRange(voltage_range),
                analogue_offset=analogue_offset,
                bandwidth_limit=BandwidthLimit(bandwidth_limit),
            )
        return status

    def get_timebase(
        self, index: int, segment_index: int, num_samples: int = 0
    ) -> tuple[int, float, int]:
        status = self._record("get_timebase")
        if status != Status.OK:
            return status, 0.0, 0
        if not self.first_valid_index <= index <= self.last_valid_index:
            return Status.INVALID_TIMEBASE, 0.0, 0
        if self.fixed_interval_ns is not None:
            interval_ns = float(self.fixed_interval_ns)
        else:
            interval_ns = ps6000_interval_ns(index)
        return Status.OK, interval_ns, self.max_samples

    def set_simple_trigger(
        self,
        channel: Channel,
        threshold_mv: float,
        direction: ThresholdDirection,
        delay: int,
        auto_trigger_ms: int,
    ) -> int:
        status = self._record("set_simple_trigger")
        if status == Status.OK:
            self.trigger = TriggerConfig(
                channel=Channel(channel),
                threshold_mv=threshold_mv,
                direction=ThresholdDirection(direction),
                auto_trigger_ms=auto_trigger_ms,
                delay_samples=delay,
            )
        return status

    def run_block(
        self,
        pre_trigger_samples: int,
        post_trigger_samples: int,
        timebase_index: int,
        segment_index: int,
    ) -> int:
        status = self._record("run_block")
        if status != Status.OK:
            return status
        if pre_trigger_samples + post_trigger_samples > self.max_samples:
            return Status.INVALID_PARAMETER
        if self.fixed_interval_ns is not None:
            interval_ns = float(self.fixed_interval_ns)
        else:
            interval_ns = ps6000_interval_ns(timebase_index)
        self._block = (pre_trigger_samples, post_trigger_samples, interval_ns)
        self._polls = 0
        self.running = True
        return Status.OK

    def is_ready(self) -> bool:
        self.calls["is_ready"] += 1
        if self._block is None:
            return False
        self._polls += 1
        return self._polls >= self.polls_until_ready

    def wait_until_ready(self) -> int:
        status = self._record("wait_until_ready")
        if status == Status.OK and self._block is not None:
            self._polls = self.polls_until_ready
        return status

    def get_block_data(
        self,
        start_index: int,
        segment_index: int,
        downsampling_ratio: int,
        downsampling_mode: DownsamplingMode,
    ) -> tuple[int, int, int, dict[Channel, np.ndarray]]:
        status = self._record("get_block_data")
        if status != Status.OK:
            return status, 0, 0, {}
        if self._block is None:
            return Status.OPERATION_FAILED, 0, 0, {}

        pre, post, interval_ns = self._block
        num_samples = pre + post - start_index
        if self.truncate_to is not None:
            num_samples = min(num_samples, int(self.truncate_to))

        t = (np.arange(start_index, start_index + num_samples) - pre) * interval_ns * 1e-9
        signal_mv = self._signal_mv(t)

        buffers = {}
        overflow = 0
        for channel, settings in sorted(self.channels.items()):
            if not settings.enabled:
                continue
            full_scale = settings.voltage_range.full_scale_mv
            values = signal_mv - settings.analogue_offset * 1000.0
            if np.any(np.abs(values) > full_scale):
                overflow |= 1 << int(channel)
            counts = np.clip(
                np.round(values / full_scale * self.MAX_ADC_VALUE),
                -self.MAX_ADC_VALUE,
                self.MAX_ADC_VALUE,
            )
            buffers[channel] = counts.astype(np.int16)
        return Status.OK, num_samples, overflow, buffers

    def _signal_mv(self, t: np.ndarray) -> np.ndarray:
        phase = 2 * np.pi * self.signal_frequency * t
        if self.signal_shape == "sine":
            signal = self.signal_amplitude_mv * np.sin(phase)
        elif self.signal_shape == "square":
            signal = self.signal_amplitude_mv * np.where(np.sin(phase) >= 0, 1.0, -1.0)
        else:
            raise ValueError(f"Unknown mock signal shape: {self.signal_shape}")
        if self.noise_mv:
            signal = signal + self._rng.normal(scale=self.noise_mv, size=t.shape)
        return signal

    def stop(self) -> int:
        status = self._record("stop")
        self.running = False
        return status
