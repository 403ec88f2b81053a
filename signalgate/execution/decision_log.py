"""
Decision Log — append-only JSONL record of every verdict.

One line per evaluated event:
  {"ts": "...", "outcome": "BLOCKED", "reason": "risk < 1%",
   "context": {...}, "plan": {...} | null}

Enabled when DECISION_LOG_PATH is set. Read back by /api/decisions so the
operator can see why an alert went quiet (IGNORED verdicts are not pushed to
Telegram, only logged here).
"""
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from ..strategy.signal_models import Decision

logger = logging.getLogger(__name__)


class DecisionLog:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_env(cls) -> Optional["DecisionLog"]:
        raw = os.getenv("DECISION_LOG_PATH")
        return cls(Path(raw).expanduser()) if raw else None

    def append(self, decision: Decision, ts: Optional[datetime] = None) -> None:
        entry = {"ts": (ts or datetime.now(timezone.utc)).isoformat(), **decision.to_dict()}
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to append decision log: {e}")

    def recent(self, n: int = 40) -> List[dict]:
        """Last n entries, newest first. Unreadable lines are skipped."""
        if n <= 0 or not self.path.exists():
            return []
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            logger.error(f"Failed to read decision log: {e}")
            return []
        entries = []
        for line in lines[-n:]:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return list(reversed(entries))
