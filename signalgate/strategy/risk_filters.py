"""
risk_filters.py — Risk plan + ordered veto filters

build_risk_plan()  — stop behind the pivot (± STOP_BUFFER_PCT), TP1 at 1R,
                     TP2 at 1.5R, signed by side.
run_filters()      — evaluates FILTERS in order; the first veto wins and
                     nothing after it runs.

Filter order (fixed):
  1. risk_too_small        risk_pct <  MIN_RISK_PCT   → "risk < 1%"
  2. risk_too_large        risk_pct >  MAX_RISK_PCT   → "risk > 3%"
  3. reached_first_target  alert bar already moved ≥ 1R our way → "reached RR1"
  4. spike                 alert bar body ≥ SPIKE_BODY_PCT       → "spike"

Every filter has the same shape:
    (plan, bar, side) -> (blocked: bool, reason: str)

`bar` is a dict with at least open/close. For the two-bar spike check it may
also carry prev_open/prev_close.
"""
from typing import Callable, List, Optional, Tuple

from . import strategy_config as _cfg
from .signal_models import PivotPoint, RiskPlan, Side

FilterResult = Tuple[bool, str]
Filter = Callable[[RiskPlan, dict, Side], FilterResult]


def _pct_label(frac: float) -> str:
    return f"{frac * 100:g}%"


def build_risk_plan(entry: float, pivot: PivotPoint, side: Side) -> RiskPlan:
    """
    Risk is signed: entry − stop for LONG, stop − entry for SHORT. A stop on
    the wrong side of entry gives risk ≤ 0, which risk_too_small vetoes.
    """
    buf = _cfg.STOP_BUFFER_PCT
    if side == Side.LONG:
        stop = pivot.price * (1 - buf)
        risk = entry - stop
        tp1  = entry + _cfg.TP1_RR * risk
        tp2  = entry + _cfg.TP2_RR * risk
    else:
        stop = pivot.price * (1 + buf)
        risk = stop - entry
        tp1  = entry - _cfg.TP1_RR * risk
        tp2  = entry - _cfg.TP2_RR * risk

    return RiskPlan(
        side          = side,
        entry         = entry,
        stop_loss     = stop,
        risk          = risk,
        take_profit_1 = tp1,
        take_profit_2 = tp2,
        risk_pct      = risk / entry if entry else 0.0,
    )


# ── Spike detection ────────────────────────────────────────────────────────

def body_pct(open_: float, close: float) -> float:
    return abs(close - open_) / max(1e-9, open_)


def is_spike_bar(open_: float, close: float, threshold: float = None) -> bool:
    """Single bar: body ≥ threshold of open."""
    threshold = _cfg.SPIKE_BODY_PCT if threshold is None else threshold
    return body_pct(open_, close) >= threshold


def is_two_bar_spike(
    open_: float,
    close: float,
    prev_open: float,
    prev_close: float,
    threshold: float = None,
    pair_ratio: float = None,
) -> bool:
    """
    Current bar alone ≥ threshold, OR current and previous bar both
    ≥ threshold × pair_ratio (two strong bars in a row).
    """
    threshold  = _cfg.SPIKE_BODY_PCT if threshold is None else threshold
    pair_ratio = _cfg.SPIKE_PAIR_RATIO if pair_ratio is None else pair_ratio
    body1 = body_pct(open_, close)
    body2 = body_pct(prev_open, prev_close)
    return body1 >= threshold or (body1 >= threshold * pair_ratio and body2 >= threshold * pair_ratio)


# ── Filters ────────────────────────────────────────────────────────────────

def risk_too_small(plan: RiskPlan, bar: dict, side: Side) -> FilterResult:
    if not plan.risk_pct >= _cfg.MIN_RISK_PCT:   # NaN vetoes
        return True, f"risk < {_pct_label(_cfg.MIN_RISK_PCT)}"
    return False, ""


def risk_too_large(plan: RiskPlan, bar: dict, side: Side) -> FilterResult:
    if not plan.risk_pct <= _cfg.MAX_RISK_PCT:
        return True, f"risk > {_pct_label(_cfg.MAX_RISK_PCT)}"
    return False, ""


def reached_first_target(plan: RiskPlan, bar: dict, side: Side) -> FilterResult:
    """Price already travelled 1R from entry before we could get in."""
    last = bar.get("close")
    if last is None:
        return False, ""
    moved = last - plan.entry if side == Side.LONG else plan.entry - last
    if moved >= plan.risk:
        return True, "reached RR1"
    return False, ""


def spike(plan: RiskPlan, bar: dict, side: Side) -> FilterResult:
    open_, close = bar.get("open"), bar.get("close")
    if open_ is None or close is None:
        return False, ""
    prev_open, prev_close = bar.get("prev_open"), bar.get("prev_close")
    if _cfg.SPIKE_USE_PREVIOUS_BAR and prev_open is not None and prev_close is not None:
        hit = is_two_bar_spike(open_, close, prev_open, prev_close)
    else:
        hit = is_spike_bar(open_, close)
    if hit:
        return True, "spike"
    return False, ""


FILTERS: List[Filter] = [
    risk_too_small,
    risk_too_large,
    reached_first_target,
    spike,
]


def run_filters(
    plan: RiskPlan,
    bar: dict,
    side: Side,
    filters: Optional[List[Filter]] = None,
) -> Tuple[Optional[str], str]:
    """
    Returns (filter_name, reason) for the first veto, or (None, "") when the
    plan passes everything.
    """
    for check in (FILTERS if filters is None else filters):
        blocked, reason = check(plan, bar, side)
        if blocked:
            return check.__name__, reason
    return None, ""
