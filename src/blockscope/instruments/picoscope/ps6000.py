"""PicoScope 6000 series digitizer implementation.

Binds the Digitizer interface to the vendor's native driver through the
ctypes wrappers shipped in the ``picosdk`` package.
"""

import ctypes
import logging

import numpy as np

from blockscope.errors import DeviceCommunicationError
from blockscope.instruments.base.digitizer import Digitizer
from blockscope.instruments.registry import InstrumentRegistry
from blockscope.tools import millivolts_to_adc
from blockscope.types import (
    MAX_AUTO_TRIGGER_MS,
    BandwidthLimit,
    Channel,
    Coupling,
    DownsamplingMode,
    Status,
    ThresholdDirection,
    VoltageRange,
)

logger = logging.getLogger(__name__)

# Lazy import picosdk to avoid requiring it for mock-only usage
_ps6000 = None

PICO_VARIANT_INFO = 3


def _get_ps6000():
    """Lazily import the picosdk ps6000 wrapper."""
    global _ps6000
    if _ps6000 is None:
        try:
            from picosdk.ps6000 import ps6000

            _ps6000 = ps6000
        except ImportError:
            raise ImportError(
                "picosdk is required for PicoScope hardware support. "
                "Install with: pip install blockscope[hardware]"
            )
    return _ps6000


@InstrumentRegistry.register_digitizer("picoscope_6000")
class PicoScope6000(Digitizer):
    """PicoScope 6000 series oscilloscope.

    Args:
        config: Configuration dictionary with:
            - serial: Optional serial number; the first unit found is
              opened when omitted.
        **kwargs: Additional arguments (ignored).
    """

    MAX_TIMEBASE_INDEX = 2**32 - 1
    MAX_ADC_VALUE = 32512

    def __init__(self, config: dict = None, **kwargs):
        self._config = config or {}
        self.serial = self._config.get("serial")
        self._handle = None
        self._model = None
        self._ranges: dict[Channel, VoltageRange] = {}
        self._enabled: set[Channel] = set()
        self._buffers: dict[Channel, np.ndarray] = {}
        self._block_samples = 0

    @property
    def ps(self):
        return _get_ps6000()

    def connect(self):
        handle = ctypes.c_int16()
        serial = self.serial.encode() if self.serial else None
        status = self.ps.ps6000OpenUnit(ctypes.byref(handle), serial)
        if status != Status.OK:
            raise DeviceCommunicationError("ps6000OpenUnit", status)
        self._handle = handle
        self._model = self._read_variant()
        logger.info("Opened PicoScope %s (handle %d)", self._model, handle.value)

    def _read_variant(self) -> str:
        string = ctypes.create_string_buffer(32)
        required = ctypes.c_int16()
        status = self.ps.ps6000GetUnitInfo(
            self._handle,
            string,
            ctypes.c_int16(len(string)),
            ctypes.byref(required),
            PICO_VARIANT_INFO,
        )
        if status != Status.OK:
            logger.warning(
                "Could not read variant info (status %s)", Status.describe(status)
            )
            return ""
        return string.value.decode()

    def disconnect(self):
        if self._handle is None:
            return
        status = self.ps.ps6000CloseUnit(self._handle)
        if status != Status.OK:
            logger.warning("ps6000CloseUnit returned %s", Status.describe(status))
        self._handle = None
        self._buffers = {}
        logger.info("PicoScope disconnected")

    @property
    def instrument_model(self) -> str:
        return self._model or ""

    def set_channel(
        self,
        channel: Channel,
        enabled: bool,
        coupling: Coupling,
        voltage_range: VoltageRange,
        analogue_offset: float,
        bandwidth_limit: BandwidthLimit,
    ) -> int:
        status = self.ps.ps6000SetChannel(
            self._handle,
            int(channel),
            int(enabled),
            int(coupling),
            int(voltage_range),
            ctypes.c_float(analogue_offset),
            int(bandwidth_limit),
        )
        if status == Status.OK:
            self._ranges[Channel(channel)] = VoltageRange(voltage_range)
            if enabled:
                self._enabled.add(Channel(channel))
            else:
                self._enabled.discard(Channel(channel))
        return status

    def get_timebase(
        self, index: int, segment_index: int, num_samples: int = 0
    ) -> tuple[int, float, int]:
        interval_ns = ctypes.c_float()
        max_samples = ctypes.c_uint32()
        status = self.ps.ps6000GetTimebase2(
            self._handle,
            ctypes.c_uint32(index),
            ctypes.c_uint32(num_samples),
            ctypes.byref(interval_ns),
            0,
            ctypes.byref(max_samples),
            ctypes.c_uint32(segment_index),
        )
        return status, float(interval_ns.value), int(max_samples.value)

    def set_simple_trigger(
        self,
        channel: Channel,
        threshold_mv: float,
        direction: ThresholdDirection,
        delay: int,
        auto_trigger_ms: int,
    ) -> int:
        if not 0 <= auto_trigger_ms <= MAX_AUTO_TRIGGER_MS:
            raise ValueError(
                f"auto_trigger_ms must be in [0, {MAX_AUTO_TRIGGER_MS}], "
                f"got {auto_trigger_ms}"
            )
        voltage_range = self._ranges.get(Channel(channel), VoltageRange.R_5V)
        threshold = millivolts_to_adc(threshold_mv, voltage_range, self.MAX_ADC_VALUE)
        return self.ps.ps6000SetSimpleTrigger(
            self._handle,
            1,
            int(channel),
            ctypes.c_int16(int(threshold)),
            int(direction),
            ctypes.c_uint32(delay),
            ctypes.c_int16(auto_trigger_ms),
        )

    def run_block(
        self,
        pre_trigger_samples: int,
        post_trigger_samples: int,
        timebase_index: int,
        segment_index: int,
    ) -> int:
        self._block_samples = pre_trigger_samples + post_trigger_samples
        return self.ps.ps6000RunBlock(
            self._handle,
            ctypes.c_uint32(pre_trigger_samples),
            ctypes.c_uint32(post_trigger_samples),
            ctypes.c_uint32(timebase_index),
            0,
            None,
            ctypes.c_uint32(segment_index),
            None,
            None,
        )

    def is_ready(self) -> bool:
        ready = ctypes.c_int16(0)
        status = self.ps.ps6000IsReady(self._handle, ctypes.byref(ready))
        if status != Status.OK:
            raise DeviceCommunicationError("ps6000IsReady", status)
        return bool(ready.value)

    def get_block_data(
        self,
        start_index: int,
        segment_index: int,
        downsampling_ratio: int,
        downsampling_mode: DownsamplingMode,
    ) -> tuple[int, int, int, dict[Channel, np.ndarray]]:
        buffer_length = self._block_samples - start_index
        self._buffers = {}
        for channel in sorted(self._enabled):
            buffer = np.zeros(buffer_length, dtype=np.int16)
            status = self.ps.ps6000SetDataBuffer(
                self._handle,
                int(channel),
                buffer.ctypes.data_as(ctypes.POINTER(ctypes.c_int16)),
                ctypes.c_uint32(buffer_length),
                int(downsampling_mode),
            )
            if status != Status.OK:
                return status, 0, 0, {}
            self._buffers[channel] = buffer

        num_samples = ctypes.c_uint32(buffer_length)
        overflow = ctypes.c_int16()
        status = self.ps.ps6000GetValues(
            self._handle,
            ctypes.c_uint32(start_index),
            ctypes.byref(num_samples),
            ctypes.c_uint32(downsampling_ratio),
            int(downsampling_mode),
            ctypes.c_uint32(segment_index),
            ctypes.byref(overflow),
        )
        return status, int(num_samples.value), int(overflow.value), dict(self._buffers)

    def stop(self) -> int:
        if self._handle is None:
            return Status.OK
        return self.ps.ps6000Stop(self._handle)
