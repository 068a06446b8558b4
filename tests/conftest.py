"""Shared fixtures: a Cliniko client backed by httpx.MockTransport, and a
pacer that never sleeps."""

from typing import Callable

import httpx
import pytest

from api_client import ClinikoClient
from handlers.pacing import Pacer

BASE_URL = "https://api.test.cliniko.com/v1"


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], ClinikoClient]:
    """Build a client whose requests are answered by ``handler``."""

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> ClinikoClient:
        return ClinikoClient("test-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))

    return factory


@pytest.fixture
def pacer() -> Pacer:
    return Pacer(delay=0, backoff=0)
