# flipswap/context.py
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import aiohttp
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .config import AppConfig, load_keypair

@dataclass(frozen=True)
class WalletContext:
    """
    Public identity plus signing capability.
    Only the SwapExecutor is handed one of these.
    """
    public_key: Pubkey
    keypair: Keypair

    @classmethod
    def from_config(cls, config: AppConfig) -> "WalletContext":
        keypair = load_keypair(config.private_key, config.public_key)
        return cls(public_key=keypair.pubkey(), keypair=keypair)

@dataclass(frozen=True)
class TraderContext:
    """
    Network handles created once at startup and shared read-only by every tick.
    """
    config: AppConfig
    http: aiohttp.ClientSession
    rpc: AsyncClient

@asynccontextmanager
async def open_context(config: AppConfig) -> AsyncIterator[TraderContext]:
    """
    Opens the HTTP session and the RPC client, and closes both on exit.
    """
    timeout = aiohttp.ClientTimeout(total=config.http_timeout_seconds)
    http = aiohttp.ClientSession(timeout=timeout)
    rpc = AsyncClient(config.rpc_endpoint, timeout=config.http_timeout_seconds)
    try:
        yield TraderContext(config=config, http=http, rpc=rpc)
    finally:
        await http.close()
        await rpc.close()
