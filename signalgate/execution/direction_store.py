"""
direction_store.py
==================
Expiring key/value memory of the last 4H direction per symbol.

Two backends, same contract:
  • UpstashDirectionStore — Upstash Redis REST (bearer token). Survives
                            serverless cold starts and process restarts.
  • MemoryDirectionStore  — in-process dict with per-key expiry. Fine for
                            a single long-running process and for tests.

build_direction_store() picks Upstash when REDIS_URL and REDIS_TOKEN are
both set, otherwise in-process.

Contract:
  • get(symbol)  → Side | None. NEVER raises. get_record() returns the full
                   DirectionRecord (side + recorded_at). Transport errors, non-200s,
                   bad JSON and unknown stored values all read as None
                   ("no established direction").
  • set(symbol, side, ttl_secs) — stores {"side", "recorded_at"} as JSON
                   and must land before the caller moves on. Failure raises
                   StoreWriteError.

Usage:
    store = build_direction_store()
    store.set("BINANCE:BTCUSDT.P", Side.LONG)
    store.get("BTCUSDT")            # → Side.LONG (keys are normalized)
"""
from __future__ import annotations

import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple
from urllib.parse import quote

import requests
from dotenv import load_dotenv

from ..strategy import strategy_config as _cfg
from ..strategy.macro_filter import parse_event_time
from ..strategy.side_detector import direction_key, normalize_symbol
from ..strategy.signal_models import DirectionRecord, Side

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parents[2]
load_dotenv(_ROOT / ".env")


class StoreWriteError(RuntimeError):
    """A direction write did not complete."""


def _encode(record: DirectionRecord) -> str:
    return json.dumps({
        "side":        record.side.value,
        "recorded_at": record.recorded_at.isoformat() if record.recorded_at else None,
    })


def _decode(symbol: str, raw) -> Optional[DirectionRecord]:
    """
    Stored value → DirectionRecord. Accepts the JSON form written by set()
    and a bare "LONG" / "SHORT" (no timestamp).
    """
    if raw is None:
        return None
    text = str(raw).strip()
    side_raw, recorded_at = text, None
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"DirectionStore: ignoring corrupt stored value {raw!r}")
            return None
        side_raw    = data.get("side")
        recorded_at = parse_event_time(data.get("recorded_at") or "")
    try:
        side = Side(str(side_raw).upper())
    except ValueError:
        logger.warning(f"DirectionStore: ignoring unknown stored value {raw!r}")
        return None
    return DirectionRecord(symbol=normalize_symbol(symbol), side=side, recorded_at=recorded_at)


class DirectionStore:
    """Base contract. Subclasses implement _get_raw / _set_raw on full keys."""

    backend = "base"

    def get_record(self, symbol: str) -> Optional[DirectionRecord]:
        key = direction_key(symbol)
        try:
            raw = self._get_raw(key)
        except Exception as e:
            logger.warning(f"DirectionStore[{self.backend}]: read {key} failed: {e} — treating as absent")
            return None
        return _decode(symbol, raw)

    def get(self, symbol: str) -> Optional[Side]:
        record = self.get_record(symbol)
        return record.side if record else None

    def set(
        self,
        symbol: str,
        side: Side,
        ttl_secs: int = _cfg.DIRECTION_TTL_SECS,
        now: Optional[datetime] = None,
    ) -> DirectionRecord:
        key    = direction_key(symbol)
        record = DirectionRecord(
            symbol      = normalize_symbol(symbol),
            side        = side,
            recorded_at = now or datetime.now(timezone.utc),
        )
        try:
            self._set_raw(key, _encode(record), ttl_secs)
        except StoreWriteError:
            raise
        except Exception as e:
            raise StoreWriteError(f"write {key} failed: {e}") from e
        logger.info(f"DirectionStore[{self.backend}]: {key} = {side.value} (ttl={ttl_secs}s)")
        return record

    def _get_raw(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _set_raw(self, key: str, value: str, ttl_secs: int) -> None:
        raise NotImplementedError


class MemoryDirectionStore(DirectionStore):
    """Process-local store. Expired keys are dropped lazily on read."""

    backend = "memory"

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._data: Dict[str, Tuple[str, float]] = {}

    def _get_raw(self, key: str) -> Optional[str]:
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if self._clock() >= expires_at:
            del self._data[key]
            return None
        return value

    def _set_raw(self, key: str, value: str, ttl_secs: int) -> None:
        self._data[key] = (value, self._clock() + ttl_secs)


class UpstashDirectionStore(DirectionStore):
    """
    Upstash Redis over its REST API.

        GET {url}/get/{key}                 → {"result": "<json>"} | {"result": null}
        GET {url}/set/{key}/{json}?EX=ttl   → {"result": "OK"}
    """

    backend = "upstash"

    def __init__(
        self,
        url:     Optional[str]   = None,
        token:   Optional[str]   = None,
        timeout: Optional[float] = None,
    ):
        self.url     = (url or os.getenv("REDIS_URL") or "").rstrip("/")
        self.token   = token or os.getenv("REDIS_TOKEN")
        self.timeout = timeout or _cfg.COLLABORATOR_TIMEOUT_SECS

        if not self.url:
            raise ValueError("REDIS_URL not set in .env")
        if not self.token:
            raise ValueError("REDIS_TOKEN not set in .env")

        self.headers = {"Authorization": f"Bearer {self.token}"}

    def _get_raw(self, key: str) -> Optional[str]:
        resp = requests.get(
            f"{self.url}/get/{quote(key, safe='')}",
            headers=self.headers, timeout=self.timeout,
        )
        if resp.status_code != 200:
            logger.warning(f"Upstash GET {key} → {resp.status_code}: {resp.text[:200]}")
            return None
        return resp.json().get("result")

    def _set_raw(self, key: str, value: str, ttl_secs: int) -> None:
        resp = requests.get(
            f"{self.url}/set/{quote(key, safe='')}/{quote(value, safe='')}",
            headers=self.headers, params={"EX": int(ttl_secs)}, timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise StoreWriteError(f"Upstash SET {key} → {resp.status_code}: {resp.text[:200]}")


def build_direction_store(
    url:   Optional[str] = None,
    token: Optional[str] = None,
) -> DirectionStore:
    url   = url   or os.getenv("REDIS_URL")
    token = token or os.getenv("REDIS_TOKEN")
    if url and token:
        logger.info("DirectionStore: using Upstash Redis REST")
        return UpstashDirectionStore(url=url, token=token)
    logger.warning("DirectionStore: REDIS_URL/REDIS_TOKEN not set — using in-process memory (lost on restart)")
    return MemoryDirectionStore()
