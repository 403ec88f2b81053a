"""
Pivot Locator — most recent fractal swing for stop placement

A fractal pivot is a bar whose low (LONG setups) or high (SHORT setups) is
strictly more extreme than each of the `left_right` bars on both sides.

Scan order matters: we walk BACKWARD from the newest bar that can already be
confirmed (the last `left_right` bars cannot — their right side hasn't printed
yet) and return the first hit. The most recent valid swing always wins, even
when an older one is more extreme.

No fractal in range → fall back to the plain extreme (min low / max high) of
the last `lookback` candles.
"""
import numpy as np
import pandas as pd

from ..exchange.binance_client import DataUnavailable
from . import strategy_config as _cfg
from .signal_models import PivotPoint, Side


def candles_needed(left_right: int = None, lookback: int = None) -> int:
    """Bars to request from the exchange for one pivot search."""
    left_right = _cfg.PIVOT_LEFT_RIGHT if left_right is None else left_right
    lookback   = _cfg.PIVOT_LOOKBACK if lookback is None else lookback
    return max(lookback + 2 * left_right + 3, _cfg.MIN_CANDLE_REQUEST)


def _is_fractal(values: np.ndarray, i: int, left_right: int, lower: bool) -> bool:
    pivot = values[i]
    for j in range(1, left_right + 1):
        if lower:
            if not (pivot < values[i - j] and pivot < values[i + j]):
                return False
        else:
            if not (pivot > values[i - j] and pivot > values[i + j]):
                return False
    return True


def find_pivot(
    df: pd.DataFrame,
    side: Side,
    left_right: int = None,
    lookback: int = None,
) -> PivotPoint:
    """
    df   — closed candles, oldest first (columns: high, low at minimum).
    side — LONG looks for a swing low, SHORT for a swing high.
    """
    left_right = _cfg.PIVOT_LEFT_RIGHT if left_right is None else left_right
    lookback   = _cfg.PIVOT_LOOKBACK if lookback is None else lookback

    if df is None or len(df) == 0:
        raise DataUnavailable("No closed candles to locate a pivot in")

    lower  = side == Side.LONG
    values = df["low" if lower else "high"].to_numpy(dtype=float)
    n      = len(values)

    for i in range(n - 1 - left_right, left_right - 1, -1):
        if _is_fractal(values, i, left_right, lower):
            return PivotPoint(price=float(values[i]), index=i, kind="fractal")

    window = values[-lookback:]
    offset = n - len(window)
    idx    = int(np.argmin(window) if lower else np.argmax(window))
    return PivotPoint(price=float(window[idx]), index=offset + idx, kind="extreme")
