"""Timebase negotiation.

The driver decides which timebase indices it accepts, depending on the
model and on how many channels are enabled. The resolver walks upwards
from a starting index until the driver accepts one.
"""

import logging

from blockscope.errors import DeviceCommunicationError, InvalidTimebase
from blockscope.instruments.base.digitizer import Digitizer
from blockscope.types import Status, TimebaseQuery, TimebaseResult

logger = logging.getLogger(__name__)


class TimebaseResolver:
    """Find the first timebase index the digitizer accepts.

    Args:
        digitizer: Connected digitizer to query.
        max_probes: Optional cap on the number of indices tried. The search
            never goes past the driver's MAX_TIMEBASE_INDEX either way.
    """

    def __init__(self, digitizer: Digitizer, max_probes: int | None = None):
        if max_probes is not None and max_probes < 1:
            raise ValueError(f"max_probes must be at least 1, got {max_probes}")
        self.digitizer = digitizer
        self.max_probes = max_probes

    def _last_index(self, initial_index: int) -> int:
        last = self.digitizer.MAX_TIMEBASE_INDEX
        if self.max_probes is not None:
            last = min(last, initial_index + self.max_probes - 1)
        return last

    def resolve(
        self, initial_index: int, segment_index: int = 0, num_samples: int = 0
    ) -> TimebaseResult:
        """Probe indices from ``initial_index`` upwards.

        Args:
            initial_index: First timebase index to try.
            segment_index: Memory segment the capture will use.
            num_samples: Samples the capture intends to take, passed through
                to the driver.

        Returns:
            The interval and capacity of the first accepted index.

        Raises:
            InvalidTimebase: No index in the probed range was accepted.
            DeviceCommunicationError: The driver failed for any other reason.
        """
        if initial_index < 0 or segment_index < 0:
            raise ValueError("timebase and segment indices must be non-negative")

        last_index = self._last_index(initial_index)
        for index in range(initial_index, last_index + 1):
            query = TimebaseQuery(candidate_index=index, segment_index=segment_index)
            status, interval_ns, max_samples = self.digitizer.get_timebase(
                query.candidate_index, query.segment_index, num_samples
            )
            if status == Status.OK:
                if interval_ns <= 0 or max_samples <= 0:
                    raise DeviceCommunicationError(
                        "get_timebase",
                        status,
                        f"index {index} reported interval {interval_ns} ns "
                        f"and capacity {max_samples}",
                    )
                result = TimebaseResult(
                    timebase_index=index,
                    interval_ns=float(interval_ns),
                    max_samples=int(max_samples),
                )
                logger.info(
                    "Resolved timebase %d: %g ns interval, %d samples max",
                    index,
                    result.interval_ns,
                    result.max_samples,
                )
                return result
            if status != Status.INVALID_TIMEBASE:
                raise DeviceCommunicationError("get_timebase", status, f"index {index}")
            logger.debug("Timebase %d rejected, trying next", index)

        raise InvalidTimebase(initial_index, last_index)
