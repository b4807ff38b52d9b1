import logging

import pytest

from outcache import BaseClock


class MockedClock(BaseClock):
    def __init__(self, current: float = 1440504000) -> None:  # Mon, 25 Aug 2015 12:00:00 GMT
        self.current = current

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture()
def clock() -> MockedClock:
    return MockedClock()


@pytest.fixture(autouse=True)
def debug_logging(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="outcache")
