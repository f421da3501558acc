# clausecheck/services/history.py
# 최근 위험도 분석 이력 (메모리 전용, 최대 개수 초과 시 오래된 항목부터 삭제)
from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .. import config
from ..risk_scorer import RiskAnalysis


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class HistoryEntry:
    text: str
    analysis: RiskAnalysis
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "analysis": self.analysis.to_dict(), "timestamp": self.timestamp}


class AnalysisHistory:
    def __init__(self, limit: int = config.HISTORY_LIMIT):
        self.limit = max(1, int(limit))
        self._entries: deque[HistoryEntry] = deque(maxlen=self.limit)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def record(self, text: str, analysis: RiskAnalysis) -> HistoryEntry:
        entry = HistoryEntry(text=(text or "").strip(), analysis=analysis, timestamp=_now_utc())
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self) -> List[HistoryEntry]:
        """오래된 것부터 최신 순"""
        with self._lock:
            return list(self._entries)

    def latest_for(self, text: str) -> Optional[HistoryEntry]:
        key = (text or "").strip()
        with self._lock:
            for entry in reversed(self._entries):
                if entry.text == key:
                    return entry
        return None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
