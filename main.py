# main.py
import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from flipswap import __version__
from flipswap.config import AppConfig, ConfigError, load_config
from flipswap.context import WalletContext, open_context
from flipswap.execution import SwapExecutor
from flipswap.logger import AsyncAuditLogger, setup_logger
from flipswap.models import USDC, Action, Stopped, Token
from flipswap.price_oracle import PriceOracle
from flipswap.scheduler import Scheduler
from flipswap.strategy import TradeStateMachine

# --- UI HELPER FUNCTIONS ---

def build_banner(config: AppConfig) -> Table:
    """Trade parameters as a Rich table. Never includes key material."""
    trade = config.trade
    table = Table(title=f"flipswap v{__version__}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", justify="right", style="green")

    table.add_row("Target", f"{trade.target.name} ({trade.target.address})")
    table.add_row("Buy below", f"${trade.buy_threshold}")
    table.add_row("Sell above", f"${trade.sell_threshold}")
    table.add_row("Notional", f"{USDC.name} {trade.trade_amount}")
    table.add_row("Slippage", f"{trade.slippage_bps} bps")
    table.add_row("First action", trade.initial_action.value)
    table.add_row("Poll interval", f"{trade.poll_interval_ms} ms")
    table.add_row("Price log every", f"{trade.observation_log_every} ticks")
    if trade.dry_run:
        table.add_row("Mode", "[bold yellow]DRY RUN[/bold yellow]")
    return table

def print_banner(config: AppConfig, console: Optional[Console] = None):
    console = console or Console()
    console.print(Panel(build_banner(config), subtitle="Press Ctrl+C to stop"))

# --- MAIN CONTROLLER ---

class FlipSwapBot:
    def __init__(self, config: AppConfig, wallet: WalletContext, logger: logging.Logger):
        self.config = config
        self.wallet = wallet
        self.logger = logger
        self.audit_log = AsyncAuditLogger(config.audit_log)

    async def record_trade(self, action: Action, src: Token, dst: Token, amount: float, tx_id: str):
        await self.audit_log.log_trade([
            datetime.now(timezone.utc).isoformat(), action.value, src.name, dst.name, amount, tx_id,
        ])

    async def run(self, max_ticks: Optional[int] = None) -> Optional[Stopped]:
        trade = self.config.trade

        async with open_context(self.config) as ctx:
            await self.audit_log.start()
            try:
                oracle = PriceOracle(ctx.http, self.config.price_api)
                executor = SwapExecutor(
                    ctx.http, ctx.rpc, self.wallet, self.config.swap_api, self.logger, dry_run=trade.dry_run,
                )
                machine = TradeStateMachine(
                    trade, USDC, oracle, executor, self.logger, on_trade=self.record_trade,
                )
                scheduler = Scheduler(
                    machine, trade.initial_action, trade.poll_interval, trade.observation_log_every,
                )
                return await scheduler.run(max_ticks=max_ticks)
            finally:
                await self.audit_log.stop()

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Buy a token below one price, sell it above another.")
    parser.add_argument("--config", default="config.yaml", help="trade parameters (YAML)")
    parser.add_argument("--env-file", default=None, help="file holding RPC_ENDPOINT, PUBLIC_KEY, PRIVATE_KEY")
    return parser.parse_args(argv)

def cli(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config, env_file=args.env_file)
        wallet = WalletContext.from_config(config)
    except ConfigError as e:
        setup_logger("flipswap", "ERROR", log_dir=None).error(f"Configuration error: {e}")
        return 1

    logger = setup_logger(config.trade.target.name, config.log_level, config.log_dir)
    print_banner(config)
    logger.info(f"Starting with {config.trade}")

    try:
        import uvloop
        asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
    except ImportError:
        pass

    try:
        stopped = asyncio.run(FlipSwapBot(config, wallet, logger).run())
    except KeyboardInterrupt:
        print("\n🛑 Bot Stopped by User.")
        return 0
    return 1 if stopped is not None else 0

if __name__ == "__main__":
    sys.exit(cli())
