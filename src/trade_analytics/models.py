from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

Status = str

STATUS_OPEN: Status = "OPEN"
STATUS_WIN: Status = "WIN"
STATUS_LOSS: Status = "LOSS"
STATUSES = (STATUS_OPEN, STATUS_WIN, STATUS_LOSS)

Session = str

SESSION_ASIA: Session = "ASIA"
SESSION_LONDON: Session = "LONDON"
SESSION_NEWYORK: Session = "NEWYORK"
SESSION_CLOSE: Session = "CLOSE"
SESSIONS = (SESSION_ASIA, SESSION_LONDON, SESSION_NEWYORK, SESSION_CLOSE)


class InvalidInput(ValueError):
    """Raised when a trade or candle collection is missing entirely."""


@dataclass(frozen=True)
class TradePlan:
    entry: float
    stop: float
    target: float
    reasoning: str = ""


@dataclass(frozen=True)
class ExecutedLevels:
    entry: float
    stop: float
    target: float | None = None


@dataclass(frozen=True)
class TradeRecord:
    trade_id: str
    date: datetime
    asset: str
    setup_type: str
    status: Status
    pnl: float | None = None
    risk_reward: float | None = None
    session: Session | None = None
    holding_time: float | None = None
    trade_plan: TradePlan | None = None
    actual_execution: ExecutedLevels | None = None
    trader: str = ""
    note: str = ""

    @property
    def realized_pnl(self) -> float:
        return 0.0 if self.pnl is None else self.pnl

    @property
    def is_closed(self) -> bool:
        return self.status != STATUS_OPEN


@dataclass(frozen=True)
class Candle:
    time: int
    open: float
    high: float
    low: float
    close: float
