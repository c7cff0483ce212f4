from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from topicbus.patterns import is_wildcard_pattern, matches_pattern


class HistoryEntry(BaseModel):
    """One recorded emission."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    topic: str
    args: list[Any] = Field(default_factory=list)
    listener_count: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    duration: float = 0.0  # seconds


class EventHistory:
    """Bounded FIFO log of past emissions, oldest first."""

    __slots__ = ('max_history_size', '_entries')

    def __init__(self, max_history_size: int = 1000):
        assert max_history_size >= 0, f'max_history_size must be >= 0, got: {max_history_size!r}'
        self.max_history_size = max_history_size
        self._entries: deque[HistoryEntry] = deque(maxlen=max_history_size)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def add_entry(self, entry: HistoryEntry) -> None:
        # deque(maxlen=...) evicts from the left once full
        self._entries.append(entry)

    def recent(self, limit: int | None = None) -> list[HistoryEntry]:
        """Return the newest ``limit`` entries, newest last."""
        if limit is None:
            return list(self._entries)
        if limit <= 0:
            return []
        if limit >= len(self._entries):
            return list(self._entries)
        return list(self._entries)[-limit:]

    def clear(self) -> None:
        self._entries.clear()

    @staticmethod
    def entry_matches_topic(entry: HistoryEntry, topic: str) -> bool:
        if is_wildcard_pattern(topic):
            return matches_pattern(entry.topic, topic)
        return entry.topic == topic

    def filter(self, topic: str, limit: int | None = None) -> list[HistoryEntry]:
        matching = [entry for entry in self._entries if self.entry_matches_topic(entry, topic)]
        if limit is None:
            return matching
        return matching[-limit:] if limit > 0 else []

    def find(
        self,
        topic: str,
        where: Callable[[HistoryEntry], bool] | None = None,
        past: bool | float | timedelta | None = None,
    ) -> HistoryEntry | None:
        """Return the newest entry matching ``topic`` (exact or wildcard).

        ``past`` limits how far back to look: True/None searches everything,
        a number or timedelta is a max age in seconds, False searches nothing.
        """
        if past is None or past is True:
            cutoff: datetime | None = None
        elif past is False:
            return None
        else:
            seconds = past.total_seconds() if isinstance(past, timedelta) else float(past)
            cutoff = datetime.now(UTC) - timedelta(seconds=max(0.0, seconds))

        for entry in reversed(self._entries):
            if cutoff is not None and entry.timestamp < cutoff:
                # entries are appended in time order, nothing older can match
                break
            if not self.entry_matches_topic(entry, topic):
                continue
            if where is not None and not where(entry):
                continue
            return entry
        return None


__all__ = ['EventHistory', 'HistoryEntry']
