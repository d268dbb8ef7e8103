"""Threshold-triggered swap bot for a single Solana token."""

__version__ = "1.0.0"
