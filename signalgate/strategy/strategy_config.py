"""
strategy_config.py — Single Source of Truth for All Entry Filters
=================================================================

THIS IS THE ONLY PLACE THESE CONSTANTS ARE DEFINED.

The evaluator, the filter pipeline, the pivot locator and the notifier all
import from here. If you need to change a threshold, change it HERE. The
notification text is rendered from the same numbers, so a changed threshold
shows up correctly in Telegram without touching the formatter.

Secrets and endpoints are NOT here — they come from .env (listed in the webhook/app.py docstring). This module is for rules only.
"""

# ── Direction memory ───────────────────────────────────────────────────────
# How long a 4H direction stays valid once recorded. After this the symbol
# has "no established direction" and every entry signal is ignored.
DIRECTION_TTL_SECS: int = 7 * 24 * 3600

# Store key prefix. One key per normalized symbol: dir4h:BTCUSDT
DIRECTION_KEY_PREFIX: str = "dir4h"

# ── Trigger phrases ────────────────────────────────────────────────────────
# Matched case-insensitively as substrings of the alert's free-text label.
# LONG is always checked first; a label carrying both words resolves to LONG.
DIRECTION_PHRASES: dict = {
    "LONG":  ("多", "long"),
    "SHORT": ("空", "short"),
}

# Entry labels are stricter on the native side: "多單進場" / "空單進場".
ENTRY_PHRASES: dict = {
    "LONG":  ("多單進場", "long"),
    "SHORT": ("空單進場", "short"),
}

# ── Pivot (fractal swing) detection ────────────────────────────────────────
# L bars strictly higher/lower on each side.
PIVOT_LEFT_RIGHT: int = 2

# Fallback window for the plain min-low / max-high extreme.
PIVOT_LOOKBACK: int = 50

# Never ask the exchange for fewer bars than this.
MIN_CANDLE_REQUEST: int = 100

# Fallback Binance interval when the alert's interval is not in the map.
DEFAULT_TIMEFRAME: str = "15m"

# ── Stop / target geometry ─────────────────────────────────────────────────
# Stop sits this fraction beyond the pivot (below for LONG, above for SHORT).
STOP_BUFFER_PCT: float = 0.005

# Target multiples of risk.
TP1_RR: float = 1.0
TP2_RR: float = 1.5

# ── Risk bounds ────────────────────────────────────────────────────────────
# risk_pct = risk / entry. Strictly below MIN → veto, strictly above MAX → veto.
MIN_RISK_PCT: float = 0.01
MAX_RISK_PCT: float = 0.03

# ── Spike filter ───────────────────────────────────────────────────────────
# Single-bar body |close - open| / open at or above this → veto.
SPIKE_BODY_PCT: float = 0.015

# Two-bar variant: both bodies at or above SPIKE_BODY_PCT × this ratio.
SPIKE_PAIR_RATIO: float = 0.8

# Off: single-bar check only (the alert bar). On: the last closed historical
# candle is used as the previous bar for the two-bar check.
SPIKE_USE_PREVIOUS_BAR: bool = False

# ── Macro blackout ─────────────────────────────────────────────────────────
# ± hours around every configured event timestamp (MACRO_EVENTS_UTC).
MACRO_WINDOW_HOURS: float = 12.0

# ── Collaborators ──────────────────────────────────────────────────────────
# Applies to Upstash, Binance and Telegram calls. Expiry = collaborator failure.
COLLABORATOR_TIMEOUT_SECS: float = 5.0
