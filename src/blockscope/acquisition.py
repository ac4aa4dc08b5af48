"""Block capture with FFT, from connection to disconnection.

``run_block_fft`` strings the timebase resolver, the capture session and
the spectrum computation together for one channel:

    from blockscope import AcquisitionConfig, run_block_fft
    from blockscope.plotting import plot_acquisition

    result = run_block_fft(AcquisitionConfig.from_file("scope.yaml"))
    plot_acquisition(result)
"""

import logging
from dataclasses import dataclass

import numpy as np

from blockscope.capture import BlockCaptureSession, apply_channel_configs
from blockscope.config import AcquisitionConfig, ModelProfile
from blockscope.instruments.base.digitizer import Digitizer
from blockscope.interface.digitizer import DigitizerFactory
from blockscope.spectrum import compute_spectrum
from blockscope.timebase import TimebaseResolver
from blockscope.tools import adc_to_millivolts
from blockscope.types import CaptureResult, Channel, SpectrumResult, TimebaseResult

logger = logging.getLogger(__name__)


@dataclass
class AcquisitionResult:
    """Everything produced by one block capture with FFT.

    Attributes:
        model: Model identifier reported by the device.
        profile: The model profile the capture was configured with.
        channel: The captured channel.
        timebase: The resolved timebase.
        capture: Raw capture result.
        trace_mv: The captured channel in mV.
        spectrum: Single-sided amplitude spectrum of ``trace_mv``.
        spectrum_fraction: Lowest fraction of the spectrum to plot.
    """

    model: str
    profile: ModelProfile
    channel: Channel
    timebase: TimebaseResult
    capture: CaptureResult
    trace_mv: np.ndarray
    spectrum: SpectrumResult
    spectrum_fraction: float = 0.001

    @property
    def time_ms(self) -> np.ndarray:
        return self.capture.time_axis_ns() / 1e6


def run_block_fft(
    config: AcquisitionConfig, digitizer: Digitizer | None = None
) -> AcquisitionResult:
    """Capture one block on the configured channel and compute its spectrum.

    Args:
        config: Acquisition settings.
        digitizer: Already created digitizer. It is connected here but left
            for the caller to disconnect. When omitted, one is created from
            ``config.driver`` and disconnected before returning.

    Returns:
        The capture, the trace in mV and its spectrum.
    """
    owned = digitizer is None
    if owned:
        digitizer = DigitizerFactory.create_from_config(config.driver)

    digitizer.connect()
    try:
        return _acquire(config, digitizer)
    finally:
        if owned:
            digitizer.disconnect()


def _acquire(config: AcquisitionConfig, digitizer: Digitizer) -> AcquisitionResult:
    model = digitizer.instrument_model
    profile = config.profile_for(model)
    logger.info(
        "Instrument model %r: %s range, %s coupling, %g mV trigger",
        model,
        profile.voltage_range.name,
        profile.coupling.name,
        profile.threshold_mv,
    )

    # The driver only accepts fast timebases once the unused channels are off
    channel_configs = config.channel_configs(profile)
    apply_channel_configs(digitizer, channel_configs)
    block_request = config.block_request()

    resolver = TimebaseResolver(digitizer, max_probes=config.timebase.max_probes)
    timebase = resolver.resolve(
        config.timebase.initial_index,
        config.timebase.segment_index,
        block_request.total_samples,
    )

    session = BlockCaptureSession(
        digitizer,
        timebase,
        mode=config.capture.mode,
        poll_interval=config.capture.poll_interval,
        ready_timeout=config.capture.ready_timeout,
    )
    capture = session.capture(
        channel_configs, config.trigger_config(profile), block_request
    )

    trace_mv = adc_to_millivolts(
        capture.trace(config.channel), profile.voltage_range, digitizer.MAX_ADC_VALUE
    )
    spectrum = compute_spectrum(trace_mv, timebase.interval_ns)

    return AcquisitionResult(
        model=model,
        profile=profile,
        channel=config.channel,
        timebase=timebase,
        capture=capture,
        trace_mv=trace_mv,
        spectrum=spectrum,
        spectrum_fraction=config.spectrum_fraction,
    )
