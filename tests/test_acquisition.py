# End-to-end tests of block capture with FFT on the simulated digitizer

import numpy as np
import pytest

from blockscope import AcquisitionConfig, run_block_fft
from blockscope.config import DriverConfig, TimebaseSettings
from blockscope.errors import CaptureConfigError, InvalidTimebase
from blockscope.instruments.mock import MockDigitizer
from blockscope.types import Channel, VoltageRange


@pytest.fixture
def config():
    return AcquisitionConfig(
        driver=DriverConfig(
            driver_type="mock",
            parameters={
                "timebase.first_valid_index": 2,
                "timebase.interval_ns": 4.0,
                "memory.max_samples": 1_000_000,
                "signal.shape": "sine",
                "signal.frequency": 10e6,
                "signal.amplitude_mv": 1000.0,
            },
        ),
        timebase=TimebaseSettings(initial_index=2),
    )


def test_one_million_samples_at_250MHz(config):
    result = run_block_fft(config)

    assert result.timebase.timebase_index == 2
    assert result.timebase.interval_ns == 4.0
    assert result.capture.num_samples_returned == 1_000_000
    assert result.capture.overflow == frozenset()
    assert result.spectrum.sample_rate == pytest.approx(250e6)
    assert result.spectrum.frequencies[0] == 0
    assert result.spectrum.frequencies[-1] == pytest.approx(125e6)
    assert len(result.trace_mv) == 1_000_000
    assert result.time_ms[1] == pytest.approx(4e-6)


def test_spectrum_peak_at_signal_frequency(config):
    result = run_block_fft(config)
    spectrum = result.spectrum
    peak = spectrum.frequencies[np.argmax(spectrum.magnitudes)]

    assert abs(peak - 10e6) <= spectrum.bin_width
    assert np.max(result.trace_mv) == pytest.approx(1000, rel=1e-2)


def test_caller_digitizer_stopped_after_failure(config):
    config.block.post_trigger_samples = 600_000
    digitizer = MockDigitizer(config={"parameters": config.driver.parameters})

    with pytest.raises(CaptureConfigError):
        run_block_fft(config, digitizer)
    # Caller-owned digitizers stay connected, but are stopped
    assert digitizer.connected
    assert digitizer.calls["stop"] == 1


def test_timebase_search_starts_at_configured_index(config):
    config.timebase = TimebaseSettings(initial_index=0, max_probes=10)
    config.block.pre_trigger_samples = 100
    config.block.post_trigger_samples = 100
    digitizer = MockDigitizer(config={"parameters": config.driver.parameters})

    result = run_block_fft(config, digitizer)
    assert result.timebase.timebase_index == 2
    assert digitizer.calls["get_timebase"] == 3


def test_no_valid_timebase(config):
    config.driver.parameters["timebase.first_valid_index"] = 500
    config.timebase = TimebaseSettings(initial_index=0, max_probes=5)

    with pytest.raises(InvalidTimebase):
        run_block_fft(config)


def test_model_profile_selects_range(config):
    config.driver.parameters["model"] = "6407"
    config.driver.parameters["signal.amplitude_mv"] = 80.0
    config.block.pre_trigger_samples = 1000
    config.block.post_trigger_samples = 1000
    digitizer = MockDigitizer(config={"parameters": config.driver.parameters})

    result = run_block_fft(config, digitizer)
    assert result.model == "6407"
    assert result.profile.voltage_range == VoltageRange.R_100MV
    assert digitizer.channels[Channel.A].voltage_range == VoltageRange.R_100MV
    assert digitizer.trigger.threshold_mv == 50
    assert not digitizer.channels[Channel.B].enabled
    assert result.capture.overflow == frozenset()


def test_default_simulation_runs():
    config = AcquisitionConfig()
    config.block.pre_trigger_samples = 5000
    config.block.post_trigger_samples = 5000

    result = run_block_fft(config)
    assert result.model == MockDigitizer.DEFAULT_MODEL
    assert result.timebase.timebase_index == 161
    assert result.capture.num_samples_returned == 10_000
