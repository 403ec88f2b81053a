"""
Side detection and symbol normalization for TradingView alert payloads.

Alerts carry a free-text label ("4H 多頭漸增", "Long entry", "空單進場 15m").
detect_side() turns that into a Side using the phrase tables in strategy_config.
"""
from typing import Dict, Iterable, Optional

from .signal_models import Side
from . import strategy_config as _cfg


def detect_side(label: str, phrases: Dict[str, Iterable[str]]) -> Optional[Side]:
    """
    Return the Side whose trigger phrase appears in `label`, or None.

    Matching is case-insensitive substring search. LONG is tested before
    SHORT, so a label containing both resolves to LONG.
    """
    text = (label or "").casefold()
    if not text:
        return None
    for side in (Side.LONG, Side.SHORT):
        for phrase in phrases.get(side.value, ()):
            if phrase and phrase.casefold() in text:
                return side
    return None


def detect_direction_side(label: str) -> Optional[Side]:
    return detect_side(label, _cfg.DIRECTION_PHRASES)


def detect_entry_side(label: str) -> Optional[Side]:
    return detect_side(label, _cfg.ENTRY_PHRASES)


def normalize_symbol(tv_symbol: str) -> str:
    """BINANCE:BTCUSDT.P → BTCUSDT"""
    s = str(tv_symbol or "").strip().split(":")[-1]
    if s.endswith(".P"):
        s = s[:-2]
    return s


def direction_key(symbol: str) -> str:
    return f"{_cfg.DIRECTION_KEY_PREFIX}:{normalize_symbol(symbol)}"
