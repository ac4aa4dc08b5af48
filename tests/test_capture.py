# Test suite for block capture sessions

import threading

import numpy as np
import pytest

from blockscope.capture import BlockCaptureSession
from blockscope.errors import (
    CaptureConfigError,
    CaptureTimeoutError,
    DeviceBusyError,
    DeviceCommunicationError,
)
from blockscope.types import (
    BlockRequest,
    CaptureMode,
    Channel,
    ChannelConfig,
    Coupling,
    Status,
    TimebaseResult,
    TriggerConfig,
    VoltageRange,
)


@pytest.fixture
def timebase():
    return TimebaseResult(timebase_index=2, interval_ns=4.0, max_samples=1_000_000)


@pytest.fixture
def channels():
    return [
        ChannelConfig(Channel.A, enabled=True, voltage_range=VoltageRange.R_5V),
        ChannelConfig(Channel.B, enabled=False),
        ChannelConfig(Channel.C, enabled=False),
        ChannelConfig(Channel.D, enabled=False),
    ]


@pytest.fixture
def trigger():
    return TriggerConfig(channel=Channel.A, threshold_mv=500.0, auto_trigger_ms=1000)


def test_full_capture(digitizer, timebase, channels, trigger):
    session = BlockCaptureSession(digitizer, timebase)
    result = session.capture(channels, trigger, BlockRequest(500_000, 500_000))

    assert result.num_samples_returned == 1_000_000
    assert result.overflow == frozenset()
    assert list(result.samples) == [Channel.A]
    assert result.samples[Channel.A].dtype == np.int16
    assert result.interval_ns == 4.0
    assert result.pre_trigger_samples == 500_000
    assert digitizer.calls["stop"] == 1
    assert not digitizer.running


def test_channel_and_trigger_applied(digitizer, timebase, channels, trigger):
    session = BlockCaptureSession(digitizer, timebase)
    session.capture(channels, trigger, BlockRequest(10, 90))

    assert digitizer.calls["set_channel"] == 4
    assert digitizer.channels[Channel.A].enabled
    assert not digitizer.channels[Channel.B].enabled
    assert digitizer.trigger == trigger


def test_reapplying_config_gives_same_result(digitizer, timebase, channels, trigger):
    session = BlockCaptureSession(digitizer, timebase)
    first = session.capture(channels, trigger, BlockRequest(100, 100))
    second = session.capture(channels, trigger, BlockRequest(100, 100))

    np.testing.assert_array_equal(first.samples[Channel.A], second.samples[Channel.A])
    assert digitizer.calls["stop"] == 2


def test_request_over_capacity(digitizer, timebase, channels, trigger):
    session = BlockCaptureSession(digitizer, timebase)

    with pytest.raises(CaptureConfigError):
        session.capture(channels, trigger, BlockRequest(500_000, 600_000))
    assert digitizer.calls["run_block"] == 0
    assert digitizer.calls["stop"] == 1


@pytest.mark.parametrize(
    "request_",
    [BlockRequest(-1, 10), BlockRequest(10, -1), BlockRequest(0, 0), BlockRequest(1, 1, -1)],
)
def test_invalid_partitions(digitizer, timebase, channels, trigger, request_):
    session = BlockCaptureSession(digitizer, timebase)
    with pytest.raises(CaptureConfigError):
        session.capture(channels, trigger, request_)


def test_no_enabled_channel(digitizer, timebase, trigger):
    session = BlockCaptureSession(digitizer, timebase)
    channels = [ChannelConfig(channel, enabled=False) for channel in Channel]
    with pytest.raises(CaptureConfigError):
        session.capture(channels, trigger, BlockRequest(10, 10))


def test_stop_called_once_when_retrieval_fails(digitizer, timebase, channels, trigger):
    digitizer.fail_on["get_block_data"] = Status.OPERATION_FAILED
    session = BlockCaptureSession(digitizer, timebase)

    with pytest.raises(DeviceCommunicationError) as excinfo:
        session.capture(channels, trigger, BlockRequest(500, 500))

    assert excinfo.value.call == "get_block_data"
    assert digitizer.calls["stop"] == 1
    assert not digitizer.running


def test_failed_stop_does_not_hide_original_error(
    digitizer, timebase, channels, trigger
):
    digitizer.fail_on["run_block"] = Status.INVALID_PARAMETER
    digitizer.fail_on["stop"] = Status.NOT_RESPONDING
    session = BlockCaptureSession(digitizer, timebase)

    with pytest.raises(DeviceCommunicationError) as excinfo:
        session.capture(channels, trigger, BlockRequest(500, 500))
    assert excinfo.value.call == "run_block"
    assert digitizer.calls["stop"] == 1


def test_failed_stop_after_capture_is_reported(digitizer, timebase, channels, trigger):
    digitizer.fail_on["stop"] = Status.NOT_RESPONDING
    session = BlockCaptureSession(digitizer, timebase)

    with pytest.raises(DeviceCommunicationError) as excinfo:
        session.capture(channels, trigger, BlockRequest(500, 500))
    assert excinfo.value.call == "stop"


def test_set_channel_failure(digitizer, timebase, channels, trigger):
    digitizer.fail_on["set_channel"] = Status.INVALID_VOLTAGE_RANGE
    session = BlockCaptureSession(digitizer, timebase)

    with pytest.raises(DeviceCommunicationError) as excinfo:
        session.capture(channels, trigger, BlockRequest(500, 500))
    assert excinfo.value.call == "set_channel"
    assert digitizer.calls["set_channel"] == 1
    assert digitizer.calls["stop"] == 1


def test_truncated_capture(digitizer, timebase, channels, trigger):
    digitizer.truncate_to = 600
    session = BlockCaptureSession(digitizer, timebase)
    result = session.capture(channels, trigger, BlockRequest(500, 500))

    assert result.num_samples_returned == 600
    assert len(result.trace(Channel.A)) == 600
    assert len(result.time_axis_ns()) == 600


def test_overflow_is_reported_not_raised(digitizer, timebase, trigger):
    channels = [
        ChannelConfig(
            Channel.A,
            enabled=True,
            coupling=Coupling.DC_50R,
            voltage_range=VoltageRange.R_100MV,
        )
    ]
    session = BlockCaptureSession(digitizer, timebase)
    result = session.capture(channels, trigger, BlockRequest(500, 500))

    assert result.overflow == frozenset({Channel.A})
    assert result.num_samples_returned == 1000


def test_polling_mode_calls_back(digitizer, timebase, channels, trigger):
    digitizer.polls_until_ready = 4
    polls = []
    session = BlockCaptureSession(
        digitizer,
        timebase,
        mode=CaptureMode.POLLING,
        poll_interval=0,
        on_poll=lambda: polls.append(1),
    )
    result = session.capture(channels, trigger, BlockRequest(50, 50))

    assert result.num_samples_returned == 100
    assert digitizer.calls["is_ready"] == 4
    assert len(polls) == 3
    assert digitizer.calls["wait_until_ready"] == 0


def test_polling_timeout(digitizer, timebase, channels, trigger):
    digitizer.polls_until_ready = 10**9
    session = BlockCaptureSession(
        digitizer,
        timebase,
        mode="polling",
        poll_interval=0.001,
        ready_timeout=0.01,
    )

    with pytest.raises(CaptureTimeoutError):
        session.capture(channels, trigger, BlockRequest(50, 50))
    assert digitizer.calls["stop"] == 1


def test_blocking_mode_uses_driver_wait(digitizer, timebase, channels, trigger):
    session = BlockCaptureSession(digitizer, timebase, mode=CaptureMode.BLOCKING)
    session.capture(channels, trigger, BlockRequest(50, 50))

    assert digitizer.calls["wait_until_ready"] == 1
    assert digitizer.calls["is_ready"] == 0


def test_concurrent_capture_is_refused(digitizer, timebase, channels, trigger):
    started = threading.Event()
    release = threading.Event()

    def hold():
        started.set()
        release.wait(5)

    digitizer.polls_until_ready = 2
    session = BlockCaptureSession(
        digitizer, timebase, mode=CaptureMode.POLLING, poll_interval=0, on_poll=hold
    )
    worker = threading.Thread(
        target=session.capture, args=(channels, trigger, BlockRequest(50, 50))
    )
    worker.start()
    try:
        assert started.wait(5)
        with pytest.raises(DeviceBusyError):
            session.capture(channels, trigger, BlockRequest(50, 50))
    finally:
        release.set()
        worker.join(5)


def test_stop_before_any_capture(digitizer, timebase):
    session = BlockCaptureSession(digitizer, timebase)
    assert session.stop() == Status.OK
    assert session.stop() == Status.OK


def test_interrupted_polling_still_stops(digitizer, timebase, channels, trigger):
    def interrupt():
        raise KeyboardInterrupt

    digitizer.polls_until_ready = 10
    session = BlockCaptureSession(
        digitizer, timebase, mode=CaptureMode.POLLING, poll_interval=0, on_poll=interrupt
    )

    with pytest.raises(KeyboardInterrupt):
        session.capture(channels, trigger, BlockRequest(50, 50))
    assert digitizer.calls["stop"] == 1
    assert not digitizer.running


def test_second_session_on_same_device_is_refused(
    digitizer, timebase, channels, trigger
):
    started = threading.Event()
    release = threading.Event()
    results = []

    def hold():
        started.set()
        release.wait(5)

    digitizer.polls_until_ready = 2
    first = BlockCaptureSession(
        digitizer, timebase, mode=CaptureMode.POLLING, poll_interval=0, on_poll=hold
    )
    second = BlockCaptureSession(digitizer, timebase)
    worker = threading.Thread(
        target=lambda: results.append(
            first.capture(channels, trigger, BlockRequest(50, 50))
        )
    )
    worker.start()
    try:
        assert started.wait(5)
        with pytest.raises(DeviceBusyError):
            second.capture(channels, trigger, BlockRequest(10, 10))
    finally:
        release.set()
        worker.join(5)

    assert results[0].num_samples_returned == 100
    assert second.capture(channels, trigger, BlockRequest(10, 10)).num_samples_returned == 20
