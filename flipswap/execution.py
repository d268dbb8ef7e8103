# flipswap/execution.py
import asyncio
import base64
import logging
from decimal import Decimal, ROUND_FLOOR
from typing import Any, Dict, Optional, Tuple

import aiohttp
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .context import WalletContext
from .models import SwapOutcome, SwapStage, Token

# The routing service takes amounts as integers with 6 implied decimals
AMOUNT_DECIMALS = 6
_SCALE = Decimal(10) ** AMOUNT_DECIMALS

DRY_RUN_TX_ID = "DRY-RUN"

def to_fixed_point(amount: float) -> int:
    """
    Converts a human-scale amount to the 6-decimal integer form.
    Always truncates: 0.1000009 -> 100000, never 100001.
    """
    scaled = Decimal(str(amount)) * _SCALE
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))

def from_fixed_point(value: Any) -> float:
    return float(Decimal(str(value)) / _SCALE)

class SwapExecutor:
    """
    Runs one routed swap in four stages: quote, build & sign, submit, confirm.
    The first failing stage aborts the rest; nothing is rolled back.
    Each completed stage emits one info event.
    """
    def __init__(
        self,
        session: aiohttp.ClientSession,
        rpc: AsyncClient,
        wallet: WalletContext,
        swap_api: str,
        logger: logging.Logger,
        dry_run: bool = False,
    ):
        self.session = session
        self.rpc = rpc
        self._wallet = wallet
        self.swap_api = swap_api.rstrip('/')
        self.logger = logger
        self.dry_run = dry_run

    async def execute(self, src: Token, dst: Token, amount: float, slippage_bps: int) -> SwapOutcome:
        """
        Returns:
            SwapOutcome with the confirmed transaction id, or the stage that failed.
        """
        quote = await self._quote(src, dst, amount, slippage_bps)
        if quote is None:
            return SwapOutcome.failure(SwapStage.QUOTE)
        self.logger.info(
            f"Planned amounts: {src.name} {from_fixed_point(quote['inAmount'])} "
            f"-> {dst.name} {from_fixed_point(quote['outAmount'])}"
        )

        if self.dry_run:
            self.logger.warning("🔵 DRY RUN: quote accepted, transaction not built or sent.")
            return SwapOutcome.success(DRY_RUN_TX_ID)

        tx = await self._build_and_sign(quote)
        if tx is None:
            return SwapOutcome.failure(SwapStage.BUILD)
        self.logger.info("Transaction signed. Submitting...")

        submitted = await self._submit(tx)
        if submitted is None:
            return SwapOutcome.failure(SwapStage.SUBMIT)
        signature, last_valid_block_height = submitted
        tx_id = str(signature)
        self.logger.info(f"Transaction submitted: {tx_id}. Waiting for confirmation...")

        if not await self._confirm(signature, last_valid_block_height):
            return SwapOutcome.failure(SwapStage.CONFIRM)
        self.logger.info(f"Transaction confirmed: {tx_id}")

        return SwapOutcome.success(tx_id)

    async def _quote(self, src: Token, dst: Token, amount: float, slippage_bps: int) -> Optional[Dict[str, Any]]:
        fixed_amount = to_fixed_point(amount)
        if fixed_amount <= 0:
            return None

        params = {
            'inputMint': src.address,
            'outputMint': dst.address,
            'amount': str(fixed_amount),
            'slippageBps': str(slippage_bps),
        }
        try:
            async with self.session.get(f"{self.swap_api}/quote", params=params) as resp:
                if resp.status != 200:
                    return None
                quote = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            return None

        if not isinstance(quote, dict) or 'inAmount' not in quote or 'outAmount' not in quote:
            return None
        try:
            from_fixed_point(quote['inAmount'])
            from_fixed_point(quote['outAmount'])
        except ArithmeticError:
            return None
        return quote

    async def _build_and_sign(self, quote: Dict[str, Any]) -> Optional[VersionedTransaction]:
        payload = {
            'userPublicKey': str(self._wallet.public_key),
            'quoteResponse': quote,
        }
        try:
            async with self.session.post(f"{self.swap_api}/swap", json=payload) as resp:
                if resp.status != 200:
                    return None
                body = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError):
            return None

        if not isinstance(body, dict) or not isinstance(body.get('swapTransaction'), str):
            return None

        try:
            raw_tx = VersionedTransaction.from_bytes(base64.b64decode(body['swapTransaction']))
            return VersionedTransaction(raw_tx.message, [self._wallet.keypair])
        except Exception as e:
            # solders surfaces decode and signer errors under several types
            self.logger.debug(f"Could not sign swap transaction: {e!r}")
            return None

    async def _submit(self, tx: VersionedTransaction) -> Optional[Tuple[Signature, int]]:
        try:
            latest = await self.rpc.get_latest_blockhash()
            last_valid_block_height = latest.value.last_valid_block_height
            resp = await self.rpc.send_raw_transaction(
                bytes(tx),
                opts=TxOpts(skip_preflight=True, max_retries=2),
            )
        except Exception as e:
            self.logger.debug(f"Submit failed: {e!r}")
            return None
        return resp.value, last_valid_block_height

    async def _confirm(self, signature: Signature, last_valid_block_height: int) -> bool:
        try:
            resp = await self.rpc.confirm_transaction(
                signature,
                commitment=Confirmed,
                last_valid_block_height=last_valid_block_height,
            )
        except Exception as e:
            # Includes the block height expiring before inclusion
            self.logger.debug(f"Confirmation failed for {signature}: {e!r}")
            return False

        statuses = resp.value
        if not statuses or statuses[0] is None:
            return False
        return statuses[0].err is None
