# Test suite for the timebase resolver

import pytest

from blockscope.errors import DeviceCommunicationError, InvalidTimebase
from blockscope.instruments.mock import MockDigitizer, ps6000_interval_ns
from blockscope.timebase import TimebaseResolver
from blockscope.types import Status


def make_digitizer(**parameters):
    dig = MockDigitizer(config={"parameters": parameters})
    dig.connect()
    return dig


@pytest.mark.parametrize("initial_index", [0, 3, 7, 10])
def test_returns_first_accepted_index(initial_index):
    dig = make_digitizer(
        **{"timebase.first_valid_index": 7, "memory.max_samples": 2000}
    )
    result = TimebaseResolver(dig, max_probes=50).resolve(initial_index)

    expected = max(initial_index, 7)
    assert result.timebase_index == expected
    assert result.interval_ns == pytest.approx(ps6000_interval_ns(expected))
    assert result.max_samples == 2000


def test_accepted_first_probe_queries_once():
    dig = make_digitizer(**{"timebase.interval_ns": 4.0})
    result = TimebaseResolver(dig).resolve(161)

    assert result.timebase_index == 161
    assert result.interval_ns == 4.0
    assert result.sample_rate == pytest.approx(250e6)
    assert dig.calls["get_timebase"] == 1


def test_always_rejecting_driver_is_bounded():
    dig = make_digitizer(
        **{"timebase.first_valid_index": 1, "timebase.last_valid_index": 0}
    )
    with pytest.raises(InvalidTimebase) as excinfo:
        TimebaseResolver(dig, max_probes=5).resolve(0)

    assert dig.calls["get_timebase"] == 5
    assert excinfo.value.first_index == 0
    assert excinfo.value.last_index == 4


def test_bound_by_driver_index_range():
    dig = make_digitizer(**{"timebase.first_valid_index": 100})
    dig.MAX_TIMEBASE_INDEX = 9

    with pytest.raises(InvalidTimebase):
        TimebaseResolver(dig).resolve(5)
    assert dig.calls["get_timebase"] == 5


def test_other_failure_aborts_immediately():
    dig = make_digitizer()
    dig.fail_on["get_timebase"] = Status.NOT_RESPONDING

    with pytest.raises(DeviceCommunicationError) as excinfo:
        TimebaseResolver(dig, max_probes=100).resolve(0)

    assert excinfo.value.status == Status.NOT_RESPONDING
    assert excinfo.value.call == "get_timebase"
    assert "NOT_RESPONDING" in str(excinfo.value)
    assert dig.calls["get_timebase"] == 1


def test_disconnected_device_is_not_retried():
    dig = MockDigitizer()

    with pytest.raises(DeviceCommunicationError) as excinfo:
        TimebaseResolver(dig).resolve(0)
    assert excinfo.value.status == Status.INVALID_HANDLE


@pytest.mark.parametrize("max_probes", [0, -3])
def test_rejects_empty_probe_bound(max_probes):
    with pytest.raises(ValueError):
        TimebaseResolver(make_digitizer(), max_probes=max_probes)


def test_rejects_negative_index():
    with pytest.raises(ValueError):
        TimebaseResolver(make_digitizer()).resolve(-1)
