"""
tests/test_logger.py - Console/file logger setup and the CSV audit trail.
"""

import logging

import pytest

from flipswap.logger import AsyncAuditLogger, setup_logger


def test_setup_logger_writes_named_file(tmp_path):
    logger = setup_logger("SETUPTEST", "INFO", str(tmp_path / "logs"))
    logger.info("hello from the loop")
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "logs" / "SETUPTEST.log").read_text(encoding="utf-8")
    assert "| INFO |" in content
    assert "hello from the loop" in content


def test_setup_logger_is_idempotent(tmp_path):
    first = setup_logger("IDEMPOTENT", "INFO", str(tmp_path))
    count = len(first.handlers)
    second = setup_logger("IDEMPOTENT", "DEBUG", str(tmp_path))

    assert first is second
    assert len(second.handlers) == count == 2
    assert second.level == logging.DEBUG


def test_setup_logger_without_file(tmp_path):
    logger = setup_logger("CONSOLEONLY", "ERROR", log_dir=None)

    assert len(logger.handlers) == 1
    assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)


@pytest.mark.asyncio
async def test_audit_logger_appends_rows(tmp_path):
    path = tmp_path / "audit" / "trades.csv"
    audit = AsyncAuditLogger(str(path))

    await audit.start()
    await audit.log_trade(["2026-01-01T00:00:00+00:00", "buy", "USDC", "SCHIZO", 0.1, "sigA"])
    await audit.log_trade(["2026-01-01T00:05:00+00:00", "sell", "SCHIZO", "USDC", 5.0, "sigB"])
    await audit.stop()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert "sigA" in lines[0] and '"buy"' in lines[0]
    assert "sigB" in lines[1]


@pytest.mark.asyncio
async def test_audit_logger_stop_without_start(tmp_path):
    await AsyncAuditLogger(str(tmp_path / "never.csv")).stop()

    assert not (tmp_path / "never.csv").exists()
