from collections import OrderedDict
from datetime import UTC, datetime

from pydantic import BaseModel


class TopicStats(BaseModel):
    count: int = 0
    first_emitted: datetime | None = None
    last_emitted: datetime | None = None


class EventStats:
    """Per-topic emission counters.

    Unbounded unless ``max_tracked_topics`` is set, in which case the least
    recently emitted topics are dropped first.
    """

    __slots__ = ('max_tracked_topics', '_stats')

    def __init__(self, max_tracked_topics: int | None = None):
        self.max_tracked_topics = max_tracked_topics
        self._stats: OrderedDict[str, TopicStats] = OrderedDict()

    def __len__(self) -> int:
        return len(self._stats)

    def __contains__(self, topic: object) -> bool:
        return topic in self._stats

    def record(self, topic: str, now: datetime | None = None) -> TopicStats:
        now = now or datetime.now(UTC)
        stats = self._stats.get(topic)
        if stats is None:
            stats = TopicStats(count=0, first_emitted=now, last_emitted=now)
            self._stats[topic] = stats
        else:
            self._stats.move_to_end(topic)
        stats.count += 1
        # keep first_emitted <= last_emitted even if the wall clock steps back
        if stats.last_emitted is None or now >= stats.last_emitted:
            stats.last_emitted = now
        if self.max_tracked_topics is not None:
            while len(self._stats) > self.max_tracked_topics:
                self._stats.popitem(last=False)
        return stats

    def get(self, topic: str) -> TopicStats | None:
        stats = self._stats.get(topic)
        return stats.model_copy() if stats is not None else None

    def snapshot(self) -> dict[str, TopicStats]:
        return {topic: stats.model_copy() for topic, stats in self._stats.items()}

    def clear(self) -> None:
        self._stats.clear()


__all__ = ['EventStats', 'TopicStats']
