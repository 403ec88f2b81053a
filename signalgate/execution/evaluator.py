"""
Signal Evaluator — one webhook event in, one Decision out.

Event kinds:

  DIRECTION_4H
    → detect LONG/SHORT from the label
    → store it for the symbol (7-day TTL)            → RECORDED
    → label not recognised                            → IGNORED (no write)

  ENTRY_SIGNAL
    RECEIVED           detect side from the label     → IGNORED "unknown event"
    DIRECTION_CHECKED  stored 4H direction must match → IGNORED (silent)
                       macro blackout                 → BLOCKED (no plan)
    PIVOT_RESOLVED     closed candles → fractal swing
    RISK_COMPUTED      stop / TP1 / TP2 from the pivot
    FILTERED           first veto wins                → BLOCKED (with plan)
    DECIDED                                           → RECOMMEND

Misalignment is never notified: the 4H trend disagreeing is the normal case,
not news. Macro and filter vetoes ARE notified so the operator sees the
numbers that would have applied.

The evaluator never retries. DataUnavailable from the price fetch escapes
evaluate()/handle() before anything is pushed.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from ..exchange.binance_client import interval_to_timeframe
from ..strategy import strategy_config as _cfg
from ..strategy.macro_filter import MacroWindow
from ..strategy.pivot_locator import candles_needed, find_pivot
from ..strategy.risk_filters import build_risk_plan, run_filters
from ..strategy.side_detector import detect_direction_side, detect_entry_side, normalize_symbol
from ..strategy.signal_models import (
    DIRECTION_4H, ENTRY_SIGNAL, Decision, DecisionContext, Outcome, SignalEvent,
)

logger = logging.getLogger(__name__)

REASON_UNKNOWN_TYPE      = "unknown type"
REASON_UNKNOWN_DIRECTION = "unrecognized direction label"
REASON_UNKNOWN_EVENT     = "unknown event"
REASON_NOT_ALIGNED       = "direction not aligned with higher-timeframe trend"
REASON_MACRO             = "macro event window"


class SignalEvaluator:
    """
    Parameters
    ----------
    store    : DirectionStore   — get(symbol) / set(symbol, side, ttl)
    history  : price client     — fetch_recent_candles(symbol, timeframe, count)
    macro    : MacroWindow      — blackout schedule (empty = never blocked)
    notifier : Notifier         — optional; handle() pushes through it
    decision_log : DecisionLog  — optional; handle() appends every verdict
    """

    def __init__(
        self,
        store,
        history,
        macro: Optional[MacroWindow] = None,
        notifier=None,
        decision_log=None,
        left_right: int = _cfg.PIVOT_LEFT_RIGHT,
        lookback:   int = _cfg.PIVOT_LOOKBACK,
    ):
        self.store        = store
        self.history      = history
        self.macro        = macro or MacroWindow()
        self.notifier     = notifier
        self.decision_log = decision_log
        self.left_right   = left_right
        self.lookback     = lookback

    # ── Public ────────────────────────────────────────────────────────

    def handle(self, event: SignalEvent, now: Optional[datetime] = None) -> Tuple[Decision, bool]:
        """
        Evaluate, then push (when the verdict is noteworthy) and log.
        Returns (decision, pushed).
        """
        decision = self.evaluate(event, now)
        pushed = False
        if decision.notify and self.notifier is not None:
            pushed = self.notifier.send_decision(decision)
        if self.decision_log is not None:
            self.decision_log.append(decision)
        return decision, pushed

    def evaluate(self, event: SignalEvent, now: Optional[datetime] = None) -> Decision:
        if event.type == DIRECTION_4H:
            return self.record_direction(event)
        if event.type == ENTRY_SIGNAL:
            return self.evaluate_entry(event, now)
        logger.info(f"Ignoring event type {event.type!r}")
        return Decision(
            outcome=Outcome.IGNORED,
            context=DecisionContext(symbol=normalize_symbol(event.symbol), timeframe=event.interval),
            reason=REASON_UNKNOWN_TYPE,
        )

    def record_direction(self, event: SignalEvent) -> Decision:
        symbol = normalize_symbol(event.symbol)
        side   = detect_direction_side(event.event)
        ctx    = DecisionContext(symbol=symbol, side=side, direction=side, timeframe=event.interval)
        if side is None:
            logger.info(f"{symbol}: direction label {event.event!r} not recognised — nothing stored")
            return Decision(outcome=Outcome.IGNORED, context=ctx, reason=REASON_UNKNOWN_DIRECTION)

        self.store.set(symbol, side, _cfg.DIRECTION_TTL_SECS)
        return Decision(outcome=Outcome.RECORDED, context=ctx)

    def evaluate_entry(self, event: SignalEvent, now: Optional[datetime] = None) -> Decision:
        now    = now or datetime.now(timezone.utc)
        symbol = normalize_symbol(event.symbol)
        side   = detect_entry_side(event.event)

        if side is None:
            logger.info(f"{symbol}: entry label {event.event!r} not recognised")
            return Decision(
                outcome=Outcome.IGNORED,
                context=DecisionContext(symbol=symbol, timeframe=event.interval),
                reason=REASON_UNKNOWN_EVENT,
            )

        # ── Direction alignment ──────────────────────────────────────────
        direction = self.store.get(symbol)
        ctx = DecisionContext(symbol=symbol, side=side, direction=direction, timeframe=event.interval)
        if direction is None or direction != side:
            logger.info(
                f"{symbol}: {side.value} signal vs 4H "
                f"{direction.value if direction else 'none'} — not aligned, skipping"
            )
            return Decision(outcome=Outcome.IGNORED, context=ctx, reason=REASON_NOT_ALIGNED)

        # ── Macro blackout (before any price work) ───────────────────────
        blocked, why = self.macro.is_blocked(now)
        if blocked:
            logger.info(f"{symbol}: ⛔ {why}")
            return Decision(outcome=Outcome.BLOCKED, context=ctx, reason=REASON_MACRO, notify=True)

        if event.open is None:
            raise ValueError("ENTRY_SIGNAL needs an open price")
        if event.close is None:
            raise ValueError("ENTRY_SIGNAL needs a close price")

        # ── Pivot → risk plan ────────────────────────────────────────────
        timeframe = interval_to_timeframe(event.interval)
        candles = self.history.fetch_recent_candles(
            symbol, timeframe, candles_needed(self.left_right, self.lookback)
        )
        pivot = find_pivot(candles, side, self.left_right, self.lookback)
        plan  = build_risk_plan(event.open, pivot, side)
        logger.info(
            f"{symbol} {side.value} {timeframe}: pivot {pivot.price} ({pivot.kind}) → "
            f"SL {plan.stop_loss:.6g} risk {plan.risk_pct:.2%}"
        )

        # ── Filters ──────────────────────────────────────────────────────
        bar = {"open": event.open, "close": event.close}
        if len(candles):
            bar["prev_open"]  = float(candles["open"].iloc[-1])
            bar["prev_close"] = float(candles["close"].iloc[-1])

        name, reason = run_filters(plan, bar, side)
        if name is not None:
            logger.info(f"{symbol}: BLOCKED by {name} — {reason}")
            return Decision(outcome=Outcome.BLOCKED, context=ctx, reason=reason, plan=plan, notify=True)

        logger.info(f"🎯 {symbol}: RECOMMEND {side.value} @ {plan.entry}")
        return Decision(outcome=Outcome.RECOMMEND, context=ctx, plan=plan, notify=True)
