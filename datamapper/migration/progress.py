"""Bounded progress log shared by a migration run and its listeners."""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Dict[str, Any]], None]

_LEVELS = {
    "info": logging.INFO,
    "progress": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class ProgressTracker:
    """
    Keeps the most recent progress events and forwards each one to listeners.

    Events are mirrored to the module logger; the buffer evicts its oldest
    entry once `max_entries` is reached.
    """

    def __init__(self, max_entries: int = 100):
        self._entries = deque(maxlen=max_entries)
        self._callbacks: List[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> None:
        self._callbacks.append(callback)

    def unsubscribe(self, callback: ProgressCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def log(self, level: str, message: str, **data: Any) -> Dict[str, Any]:
        event = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "message": message,
        }
        if data:
            event["data"] = data
        self._entries.append(event)
        logger.log(_LEVELS.get(level, logging.INFO), message)

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                # A broken listener must not stop the run
                logger.warning(f"Progress callback failed: {e}")
        return event

    def entries(self) -> List[Dict[str, Any]]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
