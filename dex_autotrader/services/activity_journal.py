"""
Append-only journal of engine events for operator visibility.

Entries live in memory only, capped at ACTIVITY_LOG_SIZE (oldest dropped
first); the journal is not a record of state. Every entry is also written to
the module logger.
"""

from __future__ import annotations

import logging
import os
import threading
from collections import deque
from typing import Deque, List, Optional

from dex_autotrader.enums.trading import LogType
from dex_autotrader.models.activity import ActivityLogEntry
from dex_autotrader.utils.log_config import logger_manager

logger = logger_manager.setup_logger(__name__)

ACTIVITY_LOG_SIZE = int(os.getenv("ACTIVITY_LOG_SIZE", "500"))

_LEVELS = {
    LogType.INFO: logging.INFO,
    LogType.SUCCESS: logging.INFO,
    LogType.ERROR: logging.ERROR,
}


class ActivityJournal:
    def __init__(self, max_entries: int = ACTIVITY_LOG_SIZE) -> None:
        self._entries: Deque[ActivityLogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def add(self, message: str, type: LogType = LogType.INFO) -> ActivityLogEntry:
        entry = ActivityLogEntry(message=message, type=type)
        with self._lock:
            self._entries.append(entry)
        logger.log(_LEVELS[type], f"[{type.value}] {message}")
        return entry

    def info(self, message: str) -> ActivityLogEntry:
        return self.add(message, LogType.INFO)

    def success(self, message: str) -> ActivityLogEntry:
        return self.add(message, LogType.SUCCESS)

    def error(self, message: str) -> ActivityLogEntry:
        return self.add(message, LogType.ERROR)

    def entries(self, type: Optional[LogType] = None) -> List[ActivityLogEntry]:
        with self._lock:
            snapshot = list(self._entries)
        if type is None:
            return snapshot
        return [e for e in snapshot if e.type == type]

    def messages(self) -> List[str]:
        return [e.message for e in self.entries()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
