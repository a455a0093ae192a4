from __future__ import annotations

from pathlib import Path

import pytest

from rtm_client.clients.http_client import RtmHttpClient
from rtm_client.config import RtmCredentials
from rtm_client.rate_limit import RequestThrottle


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials(tmp_path: Path) -> RtmCredentials:
    return RtmCredentials(
        api_key="test_api_key",
        api_secret="test_secret",
        token_path=tmp_path / "rtm_token",
        token="test_token",
    )


@pytest.fixture
def http_client(credentials: RtmCredentials, clock: FakeClock) -> RtmHttpClient:
    throttle = RequestThrottle(min_interval=1.0, clock=clock, sleep=clock.sleep)
    return RtmHttpClient(credentials, throttle=throttle)
