"""
tests/test_binance_client.py
============================
Binance futures kline client (HTTP mocked).

Invariants:
  1. The newest (forming) bar is dropped; output is oldest first
  2. Request carries normalized symbol, interval and limit
  3. Non-array body / bad rows / transport failure → DataUnavailable
  4. TradingView interval → Binance interval map, unknown → 15m
"""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from signalgate.exchange.binance_client import (
    BinanceFuturesClient, DataUnavailable, interval_to_timeframe,
)


def _kline(t: int, o: float, h: float, l: float, c: float) -> list:
    return [t, str(o), str(h), str(l), str(c), "12.5", t + 899_999, "0", 10, "0", "0", "0"]


def _resp(payload) -> MagicMock:
    r = MagicMock()
    r.status_code = 200
    r.json.return_value = payload
    return r


ROWS = [
    _kline(1_700_000_000_000, 100, 101, 99, 100.5),
    _kline(1_700_000_900_000, 100.5, 102, 100, 101.5),
    _kline(1_700_001_800_000, 101.5, 103, 101, 102.5),   # forming
]


class TestFetchRecentCandles:

    def test_drops_forming_bar(self):
        with patch("signalgate.exchange.binance_client.requests.get", return_value=_resp(ROWS)):
            df = BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 3)
        assert len(df) == 2
        assert list(df["close"]) == [100.5, 101.5]
        assert list(df["low"]) == [99.0, 100.0]
        assert df["time"].is_monotonic_increasing

    def test_request_params(self):
        with patch("signalgate.exchange.binance_client.requests.get", return_value=_resp(ROWS)) as mock_get:
            BinanceFuturesClient(base="https://fapi.test/", timeout=2).fetch_recent_candles(
                "BINANCE:BTCUSDT.P", "1h", 100
            )
        args, kwargs = mock_get.call_args
        assert args[0] == "https://fapi.test/fapi/v1/klines"
        assert kwargs["params"] == {"symbol": "BTCUSDT", "interval": "1h", "limit": 100}
        assert kwargs["timeout"] == 2

    def test_error_object_is_data_unavailable(self):
        with patch("signalgate.exchange.binance_client.requests.get",
                   return_value=_resp({"code": -1121, "msg": "Invalid symbol."})):
            with pytest.raises(DataUnavailable, match="Invalid symbol"):
                BinanceFuturesClient().fetch_recent_candles("NOPE", "15m", 100)

    def test_malformed_row(self):
        with patch("signalgate.exchange.binance_client.requests.get",
                   return_value=_resp([["x"], ROWS[0]])):
            with pytest.raises(DataUnavailable):
                BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 2)

    def test_non_numeric_price(self):
        bad = [[1_700_000_000_000, "abc", "1", "1", "1"], ROWS[0]]
        with patch("signalgate.exchange.binance_client.requests.get", return_value=_resp(bad)):
            with pytest.raises(DataUnavailable):
                BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 2)

    def test_timeout(self):
        with patch("signalgate.exchange.binance_client.requests.get",
                   side_effect=requests.Timeout("slow")):
            with pytest.raises(DataUnavailable):
                BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 100)

    def test_non_json_body(self):
        r = MagicMock()
        r.json.side_effect = ValueError("no json")
        with patch("signalgate.exchange.binance_client.requests.get", return_value=r):
            with pytest.raises(DataUnavailable):
                BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 100)

    def test_empty_array(self):
        with patch("signalgate.exchange.binance_client.requests.get", return_value=_resp([])):
            df = BinanceFuturesClient().fetch_recent_candles("BTCUSDT", "15m", 100)
        assert df.empty


class TestIntervalMap:

    @pytest.mark.parametrize("interval,expected", [
        ("1", "1m"), ("5", "5m"), ("15", "15m"), ("60", "1h"),
        ("240", "4h"), ("1D", "1d"), ("4H", "4h"), ("4h", "4h"),
        (15, "15m"), ("7", "15m"), ("", "15m"), (None, "15m"),
    ])
    def test_map(self, interval, expected):
        assert interval_to_timeframe(interval) == expected
