# flipswap/price_oracle.py
import asyncio
import math
import time
from typing import Optional

import aiohttp

from .models import PriceReading, Token

class PriceOracle:
    """
    Reads a token price from the price index.
    Every kind of failure collapses into None; the caller decides what it means.
    No retries and no logging here.
    """
    def __init__(self, session: aiohttp.ClientSession, api_url: str):
        self.session = session
        self.api_url = api_url

    async def fetch_price(self, token: Token) -> Optional[PriceReading]:
        try:
            async with self.session.get(self.api_url, params={'ids': token.address}) as resp:
                if resp.status != 200:
                    return None
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            return None

        price = self._extract_price(body, token.address)
        if price is None:
            return None
        return PriceReading(price=price, timestamp=time.time())

    @staticmethod
    def _extract_price(body, address: str) -> Optional[float]:
        # Expected shape: {"data": {"<address>": {"price": "0.0195"}}}
        try:
            raw = body['data'][address]['price']
        except (KeyError, TypeError):
            return None
        if isinstance(raw, bool):
            return None
        try:
            price = float(raw)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(price):
            return None
        return price
