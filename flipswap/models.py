# flipswap/models.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional

class Action(Enum):
    """
    The pending side of the trade cycle.
    Exactly one is current at any time.
    """
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "Action":
        return Action.SELL if self is Action.BUY else Action.BUY

@dataclass(frozen=True, slots=True)
class Token:
    name: str
    address: str  # mint / contract address

# Quote asset every trade is valued in
USDC = Token(name="USDC", address="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")

@dataclass(frozen=True, slots=True)
class PriceReading:
    """
    Price of the target token in the quote asset.
    Only valid for the decision cycle that read it.
    """
    price: float
    timestamp: float

@dataclass(frozen=True, slots=True)
class TradeConfig:
    target: Token
    buy_threshold: float
    sell_threshold: float
    trade_amount: float  # quote-asset notional per cycle
    slippage_bps: int
    initial_action: Action = Action.BUY
    poll_interval_ms: int = 1000
    observation_log_every: int = 1800
    debounce_seconds: float = 1.5
    dry_run: bool = False

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

class SwapStage(Enum):
    QUOTE = "quote"
    BUILD = "build/sign"
    SUBMIT = "submit"
    CONFIRM = "confirm"

@dataclass(frozen=True, slots=True)
class SwapOutcome:
    """
    Result of one swap attempt: a confirmed transaction id,
    or the stage that failed.
    """
    transaction_id: Optional[str] = None
    failed_stage: Optional[SwapStage] = None

    @property
    def ok(self) -> bool:
        return self.transaction_id is not None and self.failed_stage is None

    @classmethod
    def success(cls, transaction_id: str) -> "SwapOutcome":
        return cls(transaction_id=transaction_id)

    @classmethod
    def failure(cls, stage: SwapStage) -> "SwapOutcome":
        return cls(failed_stage=stage)

class StopReason(Enum):
    PRICE = "price"
    SWAP = "swap"

@dataclass(frozen=True, slots=True)
class Stopped:
    """Terminal state: the loop must not run another tick."""
    reason: StopReason
    detail: str = ""
