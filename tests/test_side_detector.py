"""
tests/test_side_detector.py
===========================
Label → Side detection and symbol normalization.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from signalgate.strategy.side_detector import (
    detect_direction_side, detect_entry_side, detect_side, direction_key, normalize_symbol,
)
from signalgate.strategy.signal_models import Side


class TestDirectionLabels:

    @pytest.mark.parametrize("label,expected", [
        ("4H 多頭漸增",   Side.LONG),
        ("4H 空頭漸增",   Side.SHORT),
        ("Long bias",     Side.LONG),
        ("LONG",          Side.LONG),
        ("trend: short",  Side.SHORT),
        ("SHORT",         Side.SHORT),
    ])
    def test_recognised(self, label, expected):
        assert detect_direction_side(label) == expected

    @pytest.mark.parametrize("label", ["foo", "", "neutral", None])
    def test_unrecognised(self, label):
        assert detect_direction_side(label) is None

    def test_long_checked_first(self):
        assert detect_direction_side("long then short") == Side.LONG


class TestEntryLabels:

    def test_native_long(self):
        assert detect_entry_side("15m 多單進場") == Side.LONG

    def test_native_short(self):
        assert detect_entry_side("空單進場") == Side.SHORT

    def test_english(self):
        assert detect_entry_side("Short entry") == Side.SHORT
        assert detect_entry_side("long entry") == Side.LONG

    def test_direction_wording_is_not_an_entry(self):
        assert detect_entry_side("多頭漸增") is None

    def test_foo(self):
        assert detect_entry_side("foo") is None


class TestCustomPhrases:

    def test_configurable_table(self):
        table = {"LONG": ("buy",), "SHORT": ("sell",)}
        assert detect_side("BUY now", table) == Side.LONG
        assert detect_side("sell the rip", table) == Side.SHORT
        assert detect_side("long", table) is None


class TestNormalizeSymbol:

    @pytest.mark.parametrize("raw,expected", [
        ("BINANCE:BTCUSDT.P", "BTCUSDT"),
        ("BTCUSDT.P",         "BTCUSDT"),
        ("BYBIT:ETHUSDT",     "ETHUSDT"),
        ("SOLUSDT",           "SOLUSDT"),
        (" BTCUSDT.P ",       "BTCUSDT"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_symbol(raw) == expected

    def test_direction_key(self):
        assert direction_key("BINANCE:BTCUSDT.P") == "dir4h:BTCUSDT"
