"""Logger protocol and pretty-printed bus summaries."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from topicbus.event_bus import EventBus


@runtime_checkable
class SupportsLogging(Protocol):
    """Anything with the four ``logging.Logger`` level methods."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def info(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...

    def error(self, msg: str, *args: Any, **kwargs: Any) -> Any: ...


def _format_listeners(bus: EventBus) -> list[str]:
    lines: list[str] = []
    all_listeners = bus.get_all_listeners()
    topics = list(all_listeners)
    for topic_index, topic in enumerate(topics):
        is_last_topic = topic_index == len(topics) - 1
        lines.append(f'{"└──" if is_last_topic else "├──"} 📌 {topic}')
        child_indent = '    ' if is_last_topic else '│   '
        listeners = all_listeners[topic]
        for listener_index, info in enumerate(listeners):
            connector = '└──' if listener_index == len(listeners) - 1 else '├──'
            once_marker = ' (once)' if info.once else ''
            lines.append(f'{child_indent}{connector} 👂 {info.handler_name}#{info.id[-4:]} priority={info.priority}{once_marker}')
    return lines


def format_eventbus_summary(bus: EventBus, history_limit: int = 10) -> str:
    lines = [f'📊 {bus}']

    lines.append('Listeners:')
    lines.extend(_format_listeners(bus) or ['    (none)'])

    lines.append('Stats:')
    stats = bus.get_event_stats()
    if not stats:
        lines.append('    (none)')
    for topic, topic_stats in stats.items():
        last = topic_stats.last_emitted.isoformat(timespec='milliseconds') if topic_stats.last_emitted else '-'
        lines.append(f'    {topic}: count={topic_stats.count} last={last}')

    lines.append(f'History (last {history_limit}):')
    history = bus.get_event_history(history_limit)
    if not history:
        lines.append('    (none)')
    for entry in history:
        lines.append(
            f'    {entry.timestamp.isoformat(timespec="milliseconds")} 🗣️ {entry.topic} '
            f'listeners={entry.listener_count} took={entry.duration * 1000:.2f}ms'
        )
    return '\n'.join(lines)


def log_eventbus_summary(bus: EventBus, history_limit: int = 10) -> str:
    """Print a summary of the bus's listeners, stats and recent history."""
    summary = format_eventbus_summary(bus, history_limit=history_limit)
    print(summary, flush=True)
    return summary


__all__ = ['SupportsLogging', 'format_eventbus_summary', 'log_eventbus_summary']
