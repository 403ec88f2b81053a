"""
Binance USDⓈ-M Futures — public kline client

Read-only market data for the pivot search. No API key needed.

    GET /fapi/v1/klines?symbol=BTCUSDT&interval=15m&limit=100

Each kline row:
    [openTime, open, high, low, close, volume, closeTime, ...]

The newest row is the bar that is still forming — it is ALWAYS dropped.

No retries. A failed or malformed response raises DataUnavailable and the
evaluation that asked for it is aborted.
"""
import logging
import os
from pathlib import Path
from typing import Optional

import pandas as pd
import requests
from dotenv import load_dotenv

from ..strategy import strategy_config as _cfg
from ..strategy.side_detector import normalize_symbol

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parents[2]
load_dotenv(_ROOT / ".env")

BINANCE_FUTURES_BASE = "https://fapi.binance.com"

# TradingView interval (minutes, or "1D"/"4H") → Binance interval
TIMEFRAME_MAP = {
    "1":   "1m",
    "3":   "3m",
    "5":   "5m",
    "15":  "15m",
    "30":  "30m",
    "60":  "1h",
    "120": "2h",
    "240": "4h",
    "1D":  "1d",
    "4H":  "4h",
}

CANDLE_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


class DataUnavailable(RuntimeError):
    """Price history could not be fetched or was not a well-formed kline array."""


def interval_to_timeframe(interval) -> str:
    key = str(interval or "").strip()
    return TIMEFRAME_MAP.get(key) or TIMEFRAME_MAP.get(key.upper()) or _cfg.DEFAULT_TIMEFRAME


class BinanceFuturesClient:
    """
    Parameters
    ----------
    base : str
        REST root (overrides BINANCE_FUTURES_BASE from .env).
    timeout : float
        Seconds per request. Expiry is reported as DataUnavailable.
    """

    def __init__(self, base: Optional[str] = None, timeout: Optional[float] = None):
        self.base    = (base or os.getenv("BINANCE_FUTURES_BASE") or BINANCE_FUTURES_BASE).rstrip("/")
        self.timeout = timeout or _cfg.COLLABORATOR_TIMEOUT_SECS

    def fetch_recent_candles(self, symbol: str, timeframe: str, count: int) -> pd.DataFrame:
        """
        Return the last closed candles, oldest first.

        Requests `count` bars and drops the newest (forming) one, so the frame
        holds count - 1 rows when the exchange has enough history.
        """
        pair = normalize_symbol(symbol)
        try:
            resp = requests.get(
                f"{self.base}/fapi/v1/klines",
                params={"symbol": pair, "interval": timeframe, "limit": int(count)},
                timeout=self.timeout,
            )
            raw = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise DataUnavailable(f"Binance kline request failed for {pair} {timeframe}: {e}") from e

        if not isinstance(raw, list):
            # Errors come back as {"code": -1121, "msg": "Invalid symbol."}
            raise DataUnavailable(f"Binance kline error for {pair} {timeframe}: {str(raw)[:200]}")

        return self._to_frame(raw[:-1], pair)

    @staticmethod
    def _to_frame(rows: list, pair: str = "") -> pd.DataFrame:
        records = []
        for k in rows:
            if not isinstance(k, (list, tuple)) or len(k) < 5:
                raise DataUnavailable(f"Malformed kline row for {pair}: {str(k)[:100]}")
            try:
                records.append({
                    "time":   pd.to_datetime(int(k[0]), unit="ms", utc=True),
                    "open":   float(k[1]),
                    "high":   float(k[2]),
                    "low":    float(k[3]),
                    "close":  float(k[4]),
                    "volume": float(k[5]) if len(k) > 5 else 0.0,
                })
            except (TypeError, ValueError) as e:
                raise DataUnavailable(f"Malformed kline row for {pair}: {e}") from e

        df = pd.DataFrame.from_records(records, columns=CANDLE_COLUMNS)
        logger.debug(f"Binance: {len(df)} closed candles for {pair}")
        return df
