# A little helper module for plotting block captures and their spectra

from typing import TYPE_CHECKING

import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np

if TYPE_CHECKING:
    from blockscope.acquisition import AcquisitionResult


def getSIScalingAndPrefix(max_value: float) -> tuple[float, str]:
    """
    Return the scaling and SI prefix for a frequency axis. E.g. 2.5e6
    returns (1e-6, 'M')

    Args:
        max_value: The largest value on the axis

    Returns:
        A tuple of the scaling (inverse of the prefix) and the prefix
          string.
    """
    v_max = abs(max_value)
    scaling: float = 1
    prefix = ""

    if v_max >= 1e3:
        prefix = "k"
        scaling = 1e-3
    if v_max >= 1e6:
        prefix = "M"
        scaling = 1e-6
    if v_max >= 1e9:
        prefix = "G"
        scaling = 1e-9

    return (scaling, prefix)


def plot_acquisition(
    result: "AcquisitionResult", fraction: float | None = None
) -> matplotlib.figure.Figure:
    """
    Plot a captured trace above its single-sided amplitude spectrum.

    Args:
        result: The output of run_block_fft
        fraction: The lowest fraction of the spectrum to show. Defaults to
            the spectrum_fraction the acquisition was configured with.

    Returns:
        The figure holding both axes
    """
    fig, (trace_ax, fft_ax) = plt.subplots(2, 1)
    fig.suptitle("Block Mode Capture with FFT")

    limit = result.profile.display_limit_mv
    trace_ax.plot(
        result.time_ms, result.trace_mv, "b", label=f"Channel {result.channel.name}"
    )
    trace_ax.set_ylim(-limit, limit)
    trace_ax.set_title("Block Data Acquisition")
    trace_ax.set_xlabel("Time (ms)")
    trace_ax.set_ylabel("Voltage (mV)")
    trace_ax.grid(True)
    trace_ax.legend()

    if fraction is None:
        fraction = result.spectrum_fraction
    spectrum = result.spectrum.truncate(fraction)
    scaling, prefix = getSIScalingAndPrefix(np.max(spectrum.frequencies))
    fft_ax.plot(spectrum.frequencies * scaling, spectrum.magnitudes)
    fft_ax.set_title("Single-Sided Amplitude Spectrum of y(t)")
    fft_ax.set_xlabel(f"Frequency ({prefix}Hz)")
    fft_ax.set_ylabel("|Y(f)|")
    fft_ax.grid(True)

    fig.tight_layout()
    return fig
