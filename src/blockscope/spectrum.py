# Spectrum of a captured trace

import logging

import numpy as np

from blockscope.types import SpectrumResult

logger = logging.getLogger(__name__)


def next_power_of_two(n: int) -> int:
    """
    Return the smallest power of two that is >= n (and >= 1).
    """
    if n < 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


def compute_spectrum(samples: np.ndarray, interval_ns: float) -> SpectrumResult:
    """
    Single-sided amplitude spectrum of a real signal.

    The signal is zero padded to the next power of two, transformed, and
    normalised by the original length L. Bins run from 0 Hz to the Nyquist
    frequency. Every bin is doubled to fold in the negative frequencies,
    except the 0 Hz bin and the Nyquist bin, which have no mirror image.

    Args:
        samples: The signal, in any unit
        interval_ns: The sampling interval in nanoseconds

    Returns:
        The spectrum, with magnitudes in the unit of the input

    Raises:
        ValueError: If there are no samples or the interval is not positive
    """
    signal = np.asarray(samples, dtype=np.float64)
    if signal.ndim != 1:
        raise ValueError(f"Expected a 1D signal, got shape {signal.shape}")
    length = len(signal)
    if length == 0:
        raise ValueError("Cannot compute the spectrum of an empty signal")
    if interval_ns <= 0:
        raise ValueError(f"Sampling interval must be positive, got {interval_ns} ns")

    nfft = next_power_of_two(length)
    coefficients = np.fft.fft(signal, n=nfft) / length
    sample_rate = 1 / (interval_ns * 1e-9)

    nbins = nfft // 2 + 1
    frequencies = np.arange(nbins) * (sample_rate / nfft)
    magnitudes = 2 * np.abs(coefficients[:nbins])
    magnitudes[0] /= 2
    if nfft % 2 == 0 and nbins > 1:
        magnitudes[-1] /= 2

    logger.debug(
        "Spectrum of %d samples: NFFT=%d, Fs=%g Hz, %d bins",
        length,
        nfft,
        sample_rate,
        nbins,
    )
    return SpectrumResult(
        frequencies=frequencies,
        magnitudes=magnitudes,
        nfft=nfft,
        sample_rate=sample_rate,
    )
