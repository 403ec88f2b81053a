"""
signal_models.py — Shared types for the webhook → decision pipeline.

SignalEvent     — one parsed TradingView alert
DirectionRecord — last 4H direction stored for a symbol
RiskPlan        — entry / stop / targets derived from the swing pivot
Decision        — the verdict for one event (never mutated once built)
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class Side(Enum):
    LONG  = "LONG"
    SHORT = "SHORT"


class Outcome(Enum):
    RECOMMEND = "RECOMMEND"   # every filter passed — enter
    BLOCKED   = "BLOCKED"     # aligned, but a veto fired (operator is told why)
    IGNORED   = "IGNORED"     # nothing to act on (unknown label, misaligned)
    RECORDED  = "RECORDED"    # 4H direction update stored


# Webhook event kinds
DIRECTION_4H = "DIRECTION_4H"
ENTRY_SIGNAL = "ENTRY_SIGNAL"


def _to_float(value, name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} is not a number: {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{name} is not a finite number: {value!r}")
    return number


@dataclass(frozen=True)
class SignalEvent:
    type:     str
    event:    str
    symbol:   str
    interval: str
    open:     Optional[float] = None   # signal bar open (entry price)
    close:    Optional[float] = None   # signal bar close at alert time

    @classmethod
    def from_payload(cls, payload: dict) -> "SignalEvent":
        """Build from the webhook JSON. Numbers may arrive as strings."""
        return cls(
            type     = str(payload.get("type") or ""),
            event    = str(payload.get("event") or ""),
            symbol   = str(payload.get("symbol") or ""),
            interval = str(payload.get("interval") or ""),
            open     = _to_float(payload.get("open"), "open"),
            close    = _to_float(payload.get("close"), "close"),
        )


@dataclass(frozen=True)
class DirectionRecord:
    symbol:      str
    side:        Side
    recorded_at: Optional[datetime] = None   # None for values written without a timestamp

    def to_dict(self) -> dict:
        return {
            "symbol":      self.symbol,
            "side":        self.side.value,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }


@dataclass(frozen=True)
class PivotPoint:
    price: float
    index: int            # position in the candle frame
    kind:  str            # 'fractal' or 'extreme'


@dataclass(frozen=True)
class RiskPlan:
    side:          Side
    entry:         float
    stop_loss:     float
    risk:          float   # signed: ≤ 0 means the stop is on the wrong side of entry
    take_profit_1: float
    take_profit_2: float
    risk_pct:      float   # risk / entry

    def to_dict(self) -> dict:
        return {
            "side":          self.side.value,
            "entry":         self.entry,
            "stop_loss":     self.stop_loss,
            "risk":          self.risk,
            "take_profit_1": self.take_profit_1,
            "take_profit_2": self.take_profit_2,
            "risk_pct":      self.risk_pct,
        }


@dataclass(frozen=True)
class DecisionContext:
    symbol:    str
    side:      Optional[Side] = None   # side the event asked for
    direction: Optional[Side] = None   # stored 4H direction at evaluation time
    timeframe: str = ""

    def to_dict(self) -> dict:
        return {
            "symbol":    self.symbol,
            "side":      self.side.value if self.side else None,
            "direction": self.direction.value if self.direction else None,
            "timeframe": self.timeframe,
        }


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    context: DecisionContext
    reason:  str = ""
    plan:    Optional[RiskPlan] = None
    notify:  bool = False              # worth a Telegram message

    def __post_init__(self):
        if self.outcome in (Outcome.BLOCKED, Outcome.IGNORED) and not self.reason:
            raise ValueError(f"{self.outcome.value} decision needs a reason")

    def to_dict(self) -> dict:
        return {
            "outcome": self.outcome.value,
            "reason":  self.reason,
            "context": self.context.to_dict(),
            "plan":    self.plan.to_dict() if self.plan else None,
        }
