# flake8: noqa  (ignore unused imports)

from ._version import __version__
from .acquisition import AcquisitionResult, run_block_fft
from .capture import BlockCaptureSession
from .config import AcquisitionConfig, ModelProfile
from .errors import (
    BlockScopeError,
    CaptureConfigError,
    CaptureTimeoutError,
    DeviceBusyError,
    DeviceCommunicationError,
    InvalidTimebase,
)
from .spectrum import compute_spectrum, next_power_of_two
from .timebase import TimebaseResolver
from .types import (
    BlockRequest,
    CaptureMode,
    CaptureResult,
    Channel,
    ChannelConfig,
    SpectrumResult,
    TimebaseResult,
    TriggerConfig,
)
