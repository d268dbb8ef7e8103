# flipswap/strategy.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

from .execution import DRY_RUN_TX_ID, SwapExecutor
from .models import Action, PriceReading, StopReason, Stopped, SwapOutcome, Token, TradeConfig
from .price_oracle import PriceOracle

SOLSCAN_TX_URL = "https://solscan.io/tx/{}"

TradeCallback = Callable[[Action, Token, Token, float, str], Awaitable[None]]

class TradeStateMachine:
    """
    Two-state trigger: BUY waits for the price to fall below the buy threshold,
    SELL waits for it to rise above the sell threshold.
    A trigger is only acted on if a second read after the debounce delay
    still agrees. Any price or swap failure yields a terminal Stopped value.
    """
    def __init__(
        self,
        config: TradeConfig,
        quote_token: Token,
        oracle: PriceOracle,
        executor: SwapExecutor,
        logger: logging.Logger,
        on_trade: Optional[TradeCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.cfg = config
        self.quote_token = quote_token
        self.target = config.target
        self.oracle = oracle
        self.executor = executor
        self.logger = logger
        self.on_trade = on_trade
        self._sleep = sleep

    async def step(self, action: Action, log_observation: bool) -> Union[Action, Stopped]:
        """
        Runs one decision cycle and returns the next pending action.
        """
        reading = await self.oracle.fetch_price(self.target)
        if reading is None:
            return self._stop(StopReason.PRICE, "Price fetch failed. Stopping.")
        if log_observation:
            self.logger.info(f"Current ${self.target.name} price: ${reading.price}")

        if action is Action.BUY:
            return await self._buy(reading)
        elif action is Action.SELL:
            return await self._sell(reading)
        raise ValueError(f"Unknown action: {action!r}")

    async def _buy(self, reading: PriceReading) -> Union[Action, Stopped]:
        if not self._buy_triggered(reading.price):
            return Action.BUY

        confirmed = await self._debounced_read()
        if confirmed is None:
            return self._stop(StopReason.PRICE, "Price fetch failed. Stopping.")
        if not self._buy_triggered(confirmed.price):
            return Action.BUY

        self.logger.info(f"Price fell below ${self.cfg.buy_threshold}. Starting purchase.")
        amount = self.cfg.trade_amount
        outcome = await self.executor.execute(self.quote_token, self.target, amount, self.cfg.slippage_bps)
        return await self._finish(Action.BUY, self.quote_token, self.target, amount, outcome)

    async def _sell(self, reading: PriceReading) -> Union[Action, Stopped]:
        if not self._sell_triggered(reading.price):
            return Action.SELL

        confirmed = await self._debounced_read()
        if confirmed is None:
            return self._stop(StopReason.PRICE, "Price fetch failed. Stopping.")
        if not self._sell_triggered(confirmed.price):
            return Action.SELL

        self.logger.info(f"Price rose above ${self.cfg.sell_threshold}. Starting sale.")
        # Sell enough target to match the quote-asset notional at the confirmed price
        amount = self.cfg.trade_amount / confirmed.price
        outcome = await self.executor.execute(self.target, self.quote_token, amount, self.cfg.slippage_bps)
        return await self._finish(Action.SELL, self.target, self.quote_token, amount, outcome)

    # A price exactly at a threshold never triggers
    def _buy_triggered(self, price: float) -> bool:
        return price < self.cfg.buy_threshold

    def _sell_triggered(self, price: float) -> bool:
        return price > self.cfg.sell_threshold

    async def _debounced_read(self) -> Optional[PriceReading]:
        # Outlasts a single-block price manipulation (e.g. a sandwich)
        await self._sleep(self.cfg.debounce_seconds)
        return await self.oracle.fetch_price(self.target)

    async def _finish(self, action: Action, src: Token, dst: Token, amount: float, outcome: SwapOutcome) -> Union[Action, Stopped]:
        if not outcome.ok:
            stage = outcome.failed_stage.value if outcome.failed_stage else "unknown"
            return self._stop(StopReason.SWAP, f"Swap failed at {stage} stage. Stopping.")

        if outcome.transaction_id == DRY_RUN_TX_ID:
            # Simulated: nothing to link or audit
            self.logger.info("Dry-run swap complete.")
            return action.opposite

        self.logger.info(f"Swap complete. {SOLSCAN_TX_URL.format(outcome.transaction_id)}")
        if self.on_trade is not None:
            await self.on_trade(action, src, dst, amount, outcome.transaction_id)
        return action.opposite

    def _stop(self, reason: StopReason, message: str) -> Stopped:
        self.logger.error(message)
        return Stopped(reason=reason, detail=message)
