"""
tests/test_main.py - Startup banner and exit codes.
"""

import io
from dataclasses import replace

from rich.console import Console

import main
from flipswap.config import AppConfig
from flipswap.models import StopReason, Stopped, TradeConfig

from conftest import TARGET


def make_app_config(dry_run=False):
    trade = TradeConfig(
        target=TARGET, buy_threshold=0.0195, sell_threshold=0.02,
        trade_amount=0.1, slippage_bps=50, dry_run=dry_run,
    )
    return AppConfig(
        trade=trade, rpc_endpoint="https://rpc.example.com",
        public_key="PUBKEY", private_key="TOP-SECRET-KEY",
    )


def render(config):
    buffer = io.StringIO()
    main.print_banner(config, Console(file=buffer, width=140))
    return buffer.getvalue()


def test_banner_lists_parameters_without_secrets():
    output = render(make_app_config())

    assert "SCHIZO" in output
    assert "0.0195" in output
    assert "50 bps" in output
    assert "Ctrl+C" in output
    assert "TOP-SECRET-KEY" not in output
    assert "DRY RUN" not in output


def test_banner_flags_dry_run():
    assert "DRY RUN" in render(make_app_config(dry_run=True))


def test_cli_exits_one_on_config_error(tmp_path, monkeypatch):
    for name in ("RPC_ENDPOINT", "RCP_ENDPOINT", "PUBLIC_KEY", "PRIVATE_KEY"):
        monkeypatch.delenv(name, raising=False)

    code = main.cli(["--config", str(tmp_path / "missing.yaml"), "--env-file", str(tmp_path / ".env")])

    assert code == 1


def patch_startup(monkeypatch, tmp_path, result):
    config = replace(make_app_config(), log_dir=str(tmp_path / "logs"), audit_log=str(tmp_path / "trades.csv"))

    async def fake_run(self, max_ticks=None):
        return result

    monkeypatch.setattr(main, "load_config", lambda path, env_file=None: config)
    monkeypatch.setattr(main.WalletContext, "from_config", classmethod(lambda cls, c: object()))
    monkeypatch.setattr(main.FlipSwapBot, "run", fake_run)
    monkeypatch.setattr(main.asyncio, "set_event_loop_policy", lambda policy: None)


def test_cli_exits_one_when_loop_stops(tmp_path, monkeypatch):
    patch_startup(monkeypatch, tmp_path, Stopped(StopReason.PRICE, "Price fetch failed. Stopping."))

    assert main.cli([]) == 1


def test_cli_exits_zero_when_loop_ends_cleanly(tmp_path, monkeypatch):
    patch_startup(monkeypatch, tmp_path, None)

    assert main.cli([]) == 0
