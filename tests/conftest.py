# PATH: tests/conftest.py
"""
Pytest fixtures and in-memory fakes for the trading loop.
Nothing here touches the network.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from flipswap.models import (  # noqa: E402
    Action,
    PriceReading,
    SwapOutcome,
    SwapStage,
    Token,
    TradeConfig,
)

TARGET = Token(name="SCHIZO", address="H1NPJkh3KUJGbpjkyQD5qG1nrpFW7tHiqek5SAbMpump")


class FakeOracle:
    """Returns queued prices in order; None means a failed read."""

    def __init__(self, prices: List[Optional[float]]):
        self.prices = list(prices)
        self.calls = 0

    async def fetch_price(self, token):
        self.calls += 1
        price = self.prices.pop(0)
        if price is None:
            return None
        return PriceReading(price=price, timestamp=0.0)


class FakeExecutor:
    def __init__(self, outcome: Optional[SwapOutcome] = None):
        self.outcome = outcome or SwapOutcome.success("5xFakeSignature")
        self.calls = []

    async def execute(self, src, dst, amount, slippage_bps):
        self.calls.append((src, dst, amount, slippage_bps))
        return self.outcome


class RecordingSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def trade_config():
    return TradeConfig(
        target=TARGET,
        buy_threshold=0.0195,
        sell_threshold=0.02,
        trade_amount=0.1,
        slippage_bps=50,
        initial_action=Action.BUY,
        poll_interval_ms=1000,
        observation_log_every=3,
        debounce_seconds=1.5,
    )


@pytest.fixture
def logger():
    log = logging.getLogger("flipswap-tests")
    log.setLevel(logging.DEBUG)
    return log


@pytest.fixture
def failed_swap():
    return SwapOutcome.failure(SwapStage.SUBMIT)


class FakeResponse:
    def __init__(self, status=200, body=None, raw=None):
        self.status = status
        self.body = body
        self.raw = raw

    async def json(self, content_type="application/json"):
        if self.raw is not None:
            raise ValueError(f"not JSON: {self.raw!r}")
        return self.body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """
    Stands in for aiohttp.ClientSession. Each queued item is either a
    FakeResponse or an exception raised when the request is made.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def _next(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def get(self, url, params=None):
        return self._next("GET", url, params=params)

    def post(self, url, json=None):
        return self._next("POST", url, json=json)
