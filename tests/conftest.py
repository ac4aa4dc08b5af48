import pytest

from blockscope.instruments.mock import MockDigitizer


@pytest.fixture
def digitizer():
    """
    A connected mock digitizer with a 4 ns timebase from index 2 upwards
    """
    dig = MockDigitizer(
        config={
            "parameters": {
                "timebase.first_valid_index": 2,
                "timebase.interval_ns": 4.0,
                "memory.max_samples": 1_000_000,
            }
        }
    )
    dig.connect()
    yield dig
    dig.disconnect()
