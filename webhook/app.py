"""
Signal Gate — Flask webhook for TradingView alerts

Endpoints:
  POST /api/tv-hook     TradingView alert → Decision → Telegram
  GET  /api/self-test   push a 🔔 test message to Telegram
  GET  /api/macro       upcoming macro blackout events
  GET  /api/decisions   recent verdicts from the decision log

.env:
  TV_SECRET            shared secret carried in every alert payload
  TG_BOT_TOKEN         Telegram bot token           (unset → log only)
  TG_CHAT_ID           Telegram chat id
  REDIS_URL            Upstash REST url             (unset → in-memory)
  REDIS_TOKEN          Upstash REST token
  MACRO_EVENTS_UTC     comma-separated ISO timestamps
  MACRO_WINDOW_HOURS   ± hours around each event (default 12)
  DECISION_LOG_PATH    JSONL file for every verdict (optional)

The webhook always answers 200 once the secret matches — TradingView does not
need to know we failed; the failure detail rides in the JSON body.

Run locally:
    flask --app webhook.app run --port 5001
"""
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask, jsonify, request

sys.path.insert(0, str(Path(__file__).parents[1]))
from signalgate.exchange.binance_client import BinanceFuturesClient
from signalgate.execution.decision_log import DecisionLog
from signalgate.execution.direction_store import build_direction_store
from signalgate.execution.evaluator import REASON_UNKNOWN_DIRECTION, SignalEvaluator
from signalgate.execution.notifier import Notifier
from signalgate.strategy.macro_filter import MacroWindow
from signalgate.strategy.signal_models import Outcome, SignalEvent

load_dotenv(Path(__file__).parents[1] / ".env")

app = Flask(__name__)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_evaluator: Optional[SignalEvaluator] = None
_notifier:  Optional[Notifier]        = None


def get_notifier() -> Notifier:
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier


def get_decision_log() -> Optional[DecisionLog]:
    return DecisionLog.from_env()


def get_evaluator() -> SignalEvaluator:
    global _evaluator
    if _evaluator is None:
        _evaluator = SignalEvaluator(
            store        = build_direction_store(),
            history      = BinanceFuturesClient(),
            macro        = MacroWindow.from_env(),
            notifier     = get_notifier(),
            decision_log = get_decision_log(),
        )
    return _evaluator


def _read_payload() -> Optional[dict]:
    payload = request.get_json(silent=True)
    if payload is None:
        raw = request.get_data(as_text=True)
        if not raw:
            return None
        payload = json.loads(raw)
    return payload if isinstance(payload, dict) else None


def decision_response(decision, pushed: bool) -> dict:
    """Decision → webhook JSON body."""
    if decision.outcome == Outcome.RECORDED:
        return {"ok": True, "saved": decision.context.side.value}
    if decision.outcome == Outcome.IGNORED:
        body = {"ok": True, "ignored": decision.reason}
        if decision.reason == REASON_UNKNOWN_DIRECTION:
            body["saved"] = None
        return body
    if decision.outcome == Outcome.BLOCKED:
        return {"ok": True, "blocked": decision.reason}
    return {"ok": True, "pushed": pushed}


@app.route("/api/tv-hook", methods=["POST"])
def tv_hook():
    try:
        payload = _read_payload()
        secret  = os.getenv("TV_SECRET")
        if not payload or not secret or payload.get("secret") != secret:
            return jsonify({"ok": False, "msg": "bad secret"}), 401

        event = SignalEvent.from_payload(payload)
        decision, pushed = get_evaluator().handle(event)
        return jsonify(decision_response(decision, pushed))
    except Exception as e:
        logger.exception(f"tv-hook failed: {e}")
        return jsonify({"ok": False, "error": str(e)}), 200


@app.route("/api/self-test")
def self_test():
    try:
        text = str(request.args.get("text") or "Self test OK")
        notifier = get_notifier()
        if not notifier.configured:
            return jsonify({"ok": False, "error": "Missing TG env vars"})
        return jsonify({"ok": notifier.send_self_test(text)})
    except Exception as e:
        logger.exception(f"self-test failed: {e}")
        return jsonify({"ok": False, "error": str(e)})


@app.route("/api/macro")
def api_macro():
    try:
        hours = float(request.args.get("hours", 48))
        mw = get_evaluator().macro
        events = mw.upcoming_events(hours)
        return jsonify({
            "window_hours": mw.window_hours,
            "events":       [e.isoformat() for e in events],
            "count":        len(events),
            "summary":      mw.format_upcoming(hours),
        })
    except Exception as e:
        return jsonify({"events": [], "error": str(e)})


@app.route("/api/decisions")
def api_decisions():
    log = get_decision_log()
    if log is None:
        return jsonify({"entries": [], "enabled": False})
    n = request.args.get("n", 40, type=int)
    return jsonify({"entries": log.recent(n), "enabled": True})


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5001)))
