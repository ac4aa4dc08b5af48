from blockscope.types import Status


class BlockScopeError(Exception):
    """Base class for blockscope specific errors"""
    pass


class DeviceCommunicationError(BlockScopeError):
    """A driver call returned a status other than OK"""

    def __init__(self, call: str, status: int, message: str | None = None):
        self.call = call
        self.status = status
        detail = f"{call} failed with status {Status.describe(status)}"
        if message:
            detail = f"{detail}: {message}"
        super().__init__(detail)


class CaptureTimeoutError(DeviceCommunicationError):
    """Device did not report capture completion in time"""
    pass


class InvalidTimebase(BlockScopeError):
    """No timebase index in the probed range was accepted by the driver"""

    def __init__(self, first_index: int, last_index: int):
        self.first_index = first_index
        self.last_index = last_index
        super().__init__(
            f"No valid timebase found in index range {first_index}..{last_index}"
        )


class CaptureConfigError(BlockScopeError):
    """Block request does not fit the hardware capacity"""
    pass


class DeviceBusyError(BlockScopeError):
    """A capture is already running on this device"""
    pass


def check_status(call: str, status: int):
    """Raise DeviceCommunicationError unless ``status`` is OK."""
    if status != Status.OK:
        raise DeviceCommunicationError(call, status)
