"""Block capture on a digitizer.

A capture applies the channel and trigger settings, starts one block
acquisition at a previously resolved timebase, waits for it and reads the
samples back. The device is stopped on every way out of a capture.
"""

import logging
import threading
import time
import weakref
from typing import Callable, Iterable

from blockscope.errors import (
    CaptureConfigError,
    CaptureTimeoutError,
    DeviceBusyError,
    check_status,
)
from blockscope.instruments.base.digitizer import Digitizer
from blockscope.types import (
    BlockRequest,
    CaptureMode,
    CaptureResult,
    Channel,
    ChannelConfig,
    DownsamplingMode,
    Status,
    TimebaseResult,
    TriggerConfig,
)

logger = logging.getLogger(__name__)

DOWNSAMPLING_RATIO = 1

# One lock per device handle, shared by every session built on it
_device_locks: "weakref.WeakKeyDictionary[Digitizer, threading.Lock]" = (
    weakref.WeakKeyDictionary()
)
_device_locks_guard = threading.Lock()


def _device_lock(digitizer: Digitizer) -> threading.Lock:
    with _device_locks_guard:
        lock = _device_locks.get(digitizer)
        if lock is None:
            lock = _device_locks[digitizer] = threading.Lock()
        return lock


def apply_channel_configs(digitizer: Digitizer, channel_configs: Iterable[ChannelConfig]):
    """Apply channel settings. Reapplying the same settings changes nothing."""
    for config in channel_configs:
        logger.debug("Configuring channel %s: %s", config.channel.name, config)
        check_status(
            "set_channel",
            digitizer.set_channel(
                config.channel,
                config.enabled,
                config.coupling,
                config.voltage_range,
                config.analogue_offset,
                config.bandwidth_limit,
            ),
        )


class BlockCaptureSession:
    """Capture blocks of samples at a resolved timebase.

    Args:
        digitizer: Connected digitizer. A capture owns it exclusively, also
            against other sessions built on the same digitizer.
        timebase: Result of timebase resolution.
        mode: Wait for completion with the driver's blocking call, or by
            polling ``is_ready``.
        poll_interval: Seconds between polls in POLLING mode.
        ready_timeout: Seconds to wait for completion in POLLING mode before
            giving up. None waits forever.
        on_poll: Called between polls in POLLING mode, so callers can do
            other work while the device captures.
    """

    def __init__(
        self,
        digitizer: Digitizer,
        timebase: TimebaseResult,
        mode: CaptureMode = CaptureMode.BLOCKING,
        poll_interval: float = 0.01,
        ready_timeout: float | None = None,
        on_poll: Callable[[], None] | None = None,
    ):
        if poll_interval < 0:
            raise ValueError(f"poll_interval must be non-negative, got {poll_interval}")
        self.digitizer = digitizer
        self.timebase = timebase
        self.mode = CaptureMode(mode)
        self.poll_interval = poll_interval
        self.ready_timeout = ready_timeout
        self.on_poll = on_poll
        self._lock = _device_lock(digitizer)

    def validate(
        self, channel_configs: list[ChannelConfig], block_request: BlockRequest
    ):
        """Check a request against the resolved capacity.

        Raises:
            CaptureConfigError: If the request cannot be captured.
        """
        if block_request.pre_trigger_samples < 0 or block_request.post_trigger_samples < 0:
            raise CaptureConfigError(
                "Pre- and post-trigger sample counts must be non-negative, got "
                f"{block_request.pre_trigger_samples} and "
                f"{block_request.post_trigger_samples}"
            )
        if block_request.segment_index < 0:
            raise CaptureConfigError(
                f"Segment index must be non-negative, got {block_request.segment_index}"
            )
        total = block_request.total_samples
        if total == 0:
            raise CaptureConfigError("Block request asks for zero samples")
        if total > self.timebase.max_samples:
            raise CaptureConfigError(
                f"Requested {block_request.pre_trigger_samples} pre-trigger + "
                f"{block_request.post_trigger_samples} post-trigger samples, "
                f"but timebase {self.timebase.timebase_index} holds at most "
                f"{self.timebase.max_samples}"
            )
        if not any(config.enabled for config in channel_configs):
            raise CaptureConfigError("No channel is enabled")

    def capture(
        self,
        channel_configs: Iterable[ChannelConfig],
        trigger_config: TriggerConfig,
        block_request: BlockRequest,
    ) -> CaptureResult:
        """Run one block capture.

        Args:
            channel_configs: Settings for each channel to configure.
            trigger_config: Simple trigger settings.
            block_request: Pre/post-trigger partition and segment.

        Returns:
            The retrieved samples of every enabled channel.

        Raises:
            CaptureConfigError: The request does not fit the timebase capacity.
            DeviceCommunicationError: A driver call failed.
            DeviceBusyError: Another capture is running on this digitizer.
        """
        if not self._lock.acquire(blocking=False):
            raise DeviceBusyError("A capture is already in progress on this device")
        try:
            return self._capture_and_stop(
                list(channel_configs), trigger_config, block_request
            )
        finally:
            self._lock.release()

    def _capture_and_stop(
        self,
        channel_configs: list[ChannelConfig],
        trigger_config: TriggerConfig,
        block_request: BlockRequest,
    ) -> CaptureResult:
        try:
            result = self._capture(channel_configs, trigger_config, block_request)
        except BaseException:
            status = self.digitizer.stop()
            if status != Status.OK:
                logger.warning(
                    "stop returned %s while aborting capture", Status.describe(status)
                )
            raise
        check_status("stop", self.digitizer.stop())
        return result

    def _capture(
        self,
        channel_configs: list[ChannelConfig],
        trigger_config: TriggerConfig,
        block_request: BlockRequest,
    ) -> CaptureResult:
        apply_channel_configs(self.digitizer, channel_configs)

        check_status(
            "set_simple_trigger",
            self.digitizer.set_simple_trigger(
                trigger_config.channel,
                trigger_config.threshold_mv,
                trigger_config.direction,
                trigger_config.delay_samples,
                trigger_config.auto_trigger_ms,
            ),
        )

        self.validate(channel_configs, block_request)

        check_status(
            "run_block",
            self.digitizer.run_block(
                block_request.pre_trigger_samples,
                block_request.post_trigger_samples,
                self.timebase.timebase_index,
                block_request.segment_index,
            ),
        )
        logger.debug(
            "Block capture started: %d pre + %d post samples, segment %d",
            block_request.pre_trigger_samples,
            block_request.post_trigger_samples,
            block_request.segment_index,
        )

        self._wait_until_ready()

        status, num_samples, overflow_bits, buffers = self.digitizer.get_block_data(
            0, block_request.segment_index, DOWNSAMPLING_RATIO, DownsamplingMode.NONE
        )
        check_status("get_block_data", status)

        if num_samples < block_request.total_samples:
            logger.warning(
                "Device returned %d of %d requested samples",
                num_samples,
                block_request.total_samples,
            )
        overflow = frozenset(
            channel for channel in Channel if overflow_bits & (1 << int(channel))
        )
        if overflow:
            logger.warning(
                "Input range exceeded on channel(s) %s",
                ", ".join(sorted(channel.name for channel in overflow)),
            )
        logger.info("Captured %d samples", num_samples)

        return CaptureResult(
            samples=buffers,
            num_samples_returned=num_samples,
            overflow=overflow,
            interval_ns=self.timebase.interval_ns,
            pre_trigger_samples=block_request.pre_trigger_samples,
        )

    def _wait_until_ready(self):
        if self.mode is CaptureMode.BLOCKING:
            check_status("wait_until_ready", self.digitizer.wait_until_ready())
            return

        started = time.monotonic()
        while not self.digitizer.is_ready():
            if (
                self.ready_timeout is not None
                and time.monotonic() - started > self.ready_timeout
            ):
                raise CaptureTimeoutError(
                    "is_ready",
                    Status.NOT_RESPONDING,
                    f"capture not complete after {self.ready_timeout} s",
                )
            if self.on_poll is not None:
                self.on_poll()
            time.sleep(self.poll_interval)

    def stop(self) -> int:
        """Abandon any capture in progress. Safe to call at any time."""
        status = self.digitizer.stop()
        check_status("stop", status)
        return status
