# Helpers for converting between ADC counts and voltages

import numpy as np

from blockscope.types import VoltageRange


def adc_to_millivolts(
    counts: np.ndarray, voltage_range: VoltageRange, max_adc: int
) -> np.ndarray:
    """
    Convert raw ADC counts to millivolts.

    Args:
        counts: Raw samples as returned by the digitizer
        voltage_range: The input range the samples were captured with
        max_adc: The ADC count corresponding to the range full scale

    Returns:
        The samples in mV as a float64 array
    """
    scale = VoltageRange(voltage_range).full_scale_mv / max_adc
    return np.asarray(counts, dtype=np.float64) * scale


def millivolts_to_adc(
    millivolts: float, voltage_range: VoltageRange, max_adc: int
) -> int:
    """
    Convert a voltage in mV to the nearest ADC count, e.g. for trigger
    thresholds. The result is clipped to the ADC span.
    """
    full_scale = VoltageRange(voltage_range).full_scale_mv
    counts = int(round(millivolts / full_scale * max_adc))
    return max(-max_adc, min(max_adc, counts))
