"""
Notifier — Pushes entry verdicts to the operator's Telegram chat.

Configure in .env:
  TG_BOT_TOKEN=<bot token from @BotFather>
  TG_CHAT_ID=<chat or channel id>

Missing credentials are not an error: every message is still logged, nothing
is pushed, send() returns False.

Message types:
  send()            — raw message
  send_decision()   — RECOMMEND or a noteworthy BLOCKED verdict
  send_self_test()  — 🔔 ping from /api/self-test
"""
import logging
import os
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

from ..strategy import strategy_config as _cfg
from ..strategy.signal_models import Decision, Outcome, Side

load_dotenv(Path(__file__).parents[2] / ".env")

logger = logging.getLogger(__name__)

TELEGRAM_API = "https://api.telegram.org"

# Filter reason → operator-facing wording
_BLOCK_TEXT = {
    "macro event window": "重大數據事件窗口",
    "reached RR1":        "尚未進場已到 1:1",
    "spike":              "短線急漲急跌",
}


def _block_text(reason: str) -> str:
    if reason.startswith("risk <"):
        return f"止損小於 {_cfg.MIN_RISK_PCT * 100:g}%"
    if reason.startswith("risk >"):
        return f"止損大於 {_cfg.MAX_RISK_PCT * 100:g}%"
    return _BLOCK_TEXT.get(reason, reason)


def fmt_price(n: float) -> str:
    """≥100 → 2 dp, ≥1 → 4 dp, below 1 → 6 significant digits."""
    x = float(n)
    if x >= 100:
        return f"{x:.2f}"
    if x >= 1:
        return f"{x:.4f}"
    return f"{x:#.6g}"


def direction_text(side: Optional[Side]) -> str:
    if side == Side.LONG:
        return "多頭漸增 LONG 📈"
    if side == Side.SHORT:
        return "空頭漸增 SHORT 📉"
    return "—"


def format_decision(decision: Decision) -> str:
    ctx = decision.context
    if decision.outcome == Outcome.RECOMMEND:
        header = ">> ✅ 建議進場 "
    else:
        header = f">> ⚠️ 「不」建議進場（原因：{_block_text(decision.reason)}）"

    lines = [
        header,
        "",
        f"📊 幣種：{ctx.symbol} ",
        f"⏳ 4H量價關係：{direction_text(ctx.direction)}",
        f"🕐 時區：{ctx.timeframe}",
    ]
    plan = decision.plan
    if plan is not None:
        lines += [
            f"🎯 Entry：{fmt_price(plan.entry)}",
            f"🛡 SL: {fmt_price(plan.stop_loss)}",
            f"🥇 TP1: {fmt_price(plan.take_profit_1)}",
            f"🥈 TP2: {fmt_price(plan.take_profit_2)}",
        ]
    return "\n".join(lines)


class Notifier:
    def __init__(
        self,
        bot_token: Optional[str]   = None,
        chat_id:   Optional[str]   = None,
        timeout:   Optional[float] = None,
    ):
        self.bot_token = bot_token or os.getenv("TG_BOT_TOKEN")
        self.chat_id   = chat_id   or os.getenv("TG_CHAT_ID")
        self.timeout   = timeout   or _cfg.COLLABORATOR_TIMEOUT_SECS

        if not self.configured:
            logger.warning(
                "Notifier: TG_BOT_TOKEN / TG_CHAT_ID not set — alerts will only log to console."
            )

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    # ── Core Send ─────────────────────────────────────────────────────

    def send(self, message: str) -> bool:
        logger.info(f"[ALERT] {message}")
        if not self.configured:
            return False
        try:
            resp = requests.post(
                f"{TELEGRAM_API}/bot{self.bot_token}/sendMessage",
                json={"chat_id": self.chat_id, "text": message},
                timeout=self.timeout,
            )
            if resp.status_code == 200:
                return True
            logger.error(f"Telegram send failed: {resp.status_code} {resp.text[:200]}")
            return False
        except requests.RequestException as e:
            logger.error(f"Telegram send error: {e}")
            return False

    # ── Verdicts ──────────────────────────────────────────────────────

    def send_decision(self, decision: Decision) -> bool:
        return self.send(format_decision(decision))

    def send_self_test(self, text: str = "Self test OK") -> bool:
        return self.send(f"🔔 {text}")
