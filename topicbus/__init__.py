"""In-process publish/subscribe event bus."""

from .config import EventBusConfig
from .dispatch_result import DispatchResult
from .event_bus import EventBus
from .event_history import EventHistory, HistoryEntry
from .event_stats import EventStats, TopicStats
from .event_types import EventTypes
from .logging import SupportsLogging, format_eventbus_summary, log_eventbus_summary
from .middlewares import (
    EventBusMiddleware,
    LoggerMiddleware,
    SchemaValidatorMiddleware,
    WALMiddleware,
)
from .patterns import compile_pattern, is_wildcard_pattern, matches_pattern
from .subscription import ListenerInfo, Subscription

__all__ = [
    'EventBus',
    'EventBusConfig',
    'EventBusMiddleware',
    'LoggerMiddleware',
    'SchemaValidatorMiddleware',
    'WALMiddleware',
    'DispatchResult',
    'EventHistory',
    'HistoryEntry',
    'EventStats',
    'TopicStats',
    'EventTypes',
    'ListenerInfo',
    'Subscription',
    'SupportsLogging',
    'format_eventbus_summary',
    'log_eventbus_summary',
    'compile_pattern',
    'is_wildcard_pattern',
    'matches_pattern',
]
