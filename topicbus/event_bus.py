import inspect
import json
import logging
import time
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from uuid_extensions import uuid7str  # pyright: ignore[reportMissingImports, reportUnknownVariableType]

uuid7str: Callable[[], str] = uuid7str  # pyright: ignore

from topicbus.config import LIBRARY_VERSION, TOPICBUS_LOGGING_LEVEL, EventBusConfig
from topicbus.dispatch_result import DispatchResult
from topicbus.event_history import EventHistory, HistoryEntry
from topicbus.event_stats import EventStats, TopicStats
from topicbus.helpers import get_callable_name, log_filtered_traceback, snapshot_args
from topicbus.logging import SupportsLogging, log_eventbus_summary
from topicbus.middlewares import EventBusMiddleware
from topicbus.patterns import is_wildcard_pattern, matches_pattern
from topicbus.subscription import ListenerCallable, ListenerInfo, Subscription

logger = logging.getLogger('topicbus')
logger.setLevel(TOPICBUS_LOGGING_LEVEL)

# (subscription, wildcard pattern it matched through or None for exact topics)
DispatchTarget = tuple[Subscription, str | None]


class EventBus:
    """
    Synchronous in-process publish/subscribe bus.

    Features:
    - Priority-ordered dispatch (higher first, ties in registration order)
    - One-shot subscriptions via once()
    - Wildcard subscriptions ('order.*', 'user:??') matched against the whole topic
    - Middleware pipeline transforming emitted arguments before dispatch
    - Per-listener failure isolation, every emit() returns one DispatchResult per listener
    - Bounded emission history and per-topic statistics
    """

    # Class Attributes
    name: str = 'EventBus'

    # Runtime State
    id: str = '00000000-0000-0000-0000-000000000000'
    config: EventBusConfig
    listeners: dict[str, list[Subscription]]
    wildcard_listeners: dict[str, list[Subscription]]
    middlewares: list[EventBusMiddleware]
    event_history: EventHistory
    event_stats: EventStats
    logger: SupportsLogging

    _sequence: int = 0

    def __init__(
        self,
        name: str | None = None,
        *,
        enable_logging: bool = False,
        max_listeners: int = 100,
        wildcard_events: bool = True,
        async_events: bool = True,
        remove_faulty_listeners: bool = False,
        max_history_size: int = 1000,  # Keep only the last 1000 emissions in history
        max_history_args: int = 10,
        max_tracked_topics: int | None = None,
        middlewares: Sequence[EventBusMiddleware] | None = None,
        logger: SupportsLogging | None = None,
        id: str | None = None,
    ):
        self.id = str(UUID(str(id))) if id is not None else uuid7str()
        self.name = name or f'{self.__class__.__name__}_{self.id[-8:]}'
        assert self.name.isidentifier(), f'EventBus name must be an identifier string, got: {self.name}'

        self.config = EventBusConfig(
            enable_logging=enable_logging,
            max_listeners=max_listeners,
            wildcard_events=wildcard_events,
            async_events=async_events,
            remove_faulty_listeners=remove_faulty_listeners,
            max_history_size=max_history_size,
            max_history_args=max_history_args,
            max_tracked_topics=max_tracked_topics,
        )
        self.logger = logger if logger is not None else logging.getLogger('topicbus')
        assert isinstance(self.logger, SupportsLogging), f'logger must provide debug/info/warning/error, got: {self.logger!r}'

        self.listeners = {}
        self.wildcard_listeners = {}
        self.middlewares = []
        self.event_history = EventHistory(max_history_size=self.config.max_history_size)
        self.event_stats = EventStats(max_tracked_topics=self.config.max_tracked_topics)
        self._sequence = 0

        for middleware in middlewares or ():
            self.use(middleware)

    def __str__(self) -> str:
        return (
            f'{self.label}(topics={len(self.listeners) + len(self.wildcard_listeners)} '
            f'listeners={self.listener_count()} history={len(self.event_history)} middlewares={len(self.middlewares)})'
        )

    def __repr__(self) -> str:
        return str(self)

    @property
    def label(self) -> str:
        return f'{self.name}#{self.id[-4:]}'

    def _echo(self, msg: str, *args: Any) -> None:
        """Registration/emission echo: INFO with enable_logging, DEBUG otherwise."""
        if self.config.enable_logging:
            self.logger.info(msg, *args)
        else:
            self.logger.debug(msg, *args)

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    # Registration

    def on(
        self,
        topic: str,
        handler: ListenerCallable,
        *,
        priority: int = 0,
        once: bool = False,
        context: Any = None,
    ) -> str | None:
        """
        Subscribe ``handler`` to a topic or wildcard pattern and return the subscription id.

        Returns None (and logs a warning) when the topic already has max_listeners subscriptions.

        Examples:
                bus.on('order.created', handler)  # Exact topic
                bus.on('order.*', handler, priority=10)  # Any order.<...> topic, runs before priority 0
                bus.on('user:????', handler, once=True)  # Fires once, then unsubscribes itself
                bus.on('cart.updated', Cart.refresh, context=cart)  # Called as Cart.refresh(cart, *args)
        """
        if not isinstance(topic, str):
            raise TypeError(f'topic must be a string, got: {type(topic).__name__}')
        if not topic:
            raise ValueError('topic must be a non-empty string')
        if not callable(handler):
            raise TypeError(f'Invalid listener: {handler!r}, must be callable')
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise TypeError(f'priority must be an integer, got: {type(priority).__name__}')

        is_pattern = self.config.wildcard_events and is_wildcard_pattern(topic)
        registry = self.wildcard_listeners if is_pattern else self.listeners

        bucket = registry.get(topic)
        if bucket is not None and len(bucket) >= self.config.max_listeners:
            self.logger.warning(
                '⚠️ %s Max listeners (%d) reached for topic %r, not registering %s',
                self,
                self.config.max_listeners,
                topic,
                get_callable_name(handler),
            )
            return None

        subscription = Subscription.from_callable(
            topic=topic,
            handler=handler,
            priority=priority,
            once=once,
            context=context,
            is_pattern=is_pattern,
            sequence=self._next_sequence(),
        )
        registry.setdefault(topic, []).append(subscription)
        self._echo(
            '👂 %s.on(%s, %s) Registered listener #%s priority=%d%s',
            self,
            topic,
            subscription.handler_name,
            subscription.id[-4:],
            priority,
            ' once' if once else '',
        )
        return subscription.id

    def once(self, topic: str, handler: ListenerCallable, *, priority: int = 0, context: Any = None) -> str | None:
        """Subscribe ``handler`` for a single invocation, see on()."""
        return self.on(topic, handler, priority=priority, once=True, context=context)

    def off(self, topic: str, handler_or_id: ListenerCallable | str) -> bool:
        """Remove one subscription from ``topic`` by its id or by the handler it was registered with."""
        for registry in (self.listeners, self.wildcard_listeners):
            bucket = registry.get(topic)
            if not bucket:
                continue
            for subscription in bucket:
                if isinstance(handler_or_id, str):
                    matched = subscription.id == handler_or_id
                else:
                    matched = subscription.matches_handler(handler_or_id)
                if matched:
                    self._remove_subscription(registry, topic, subscription)
                    self._echo('🔇 %s.off(%s, %s) Removed listener #%s', self, topic, subscription.handler_name, subscription.id[-4:])
                    return True
        return False

    def remove_all_listeners(self, topic: str | None = None) -> bool:
        """Remove every subscription for ``topic``, or the whole registry when no topic is given."""
        if topic is None:
            registries = [(registry, key) for registry in (self.listeners, self.wildcard_listeners) for key in list(registry)]
        else:
            registries = [(registry, topic) for registry in (self.listeners, self.wildcard_listeners) if topic in registry]

        for registry, key in registries:
            for subscription in registry.pop(key):
                subscription.active = False

        self._echo('🔇 %s.remove_all_listeners(%s)', self, topic if topic is not None else '*')
        return True

    def _remove_subscription(self, registry: dict[str, list[Subscription]], key: str, subscription: Subscription) -> None:
        subscription.active = False
        bucket = registry.get(key)
        if bucket is None:
            return
        # identity comparison, pydantic __eq__ compares field values
        bucket[:] = [existing for existing in bucket if existing is not subscription]
        if not bucket:
            del registry[key]

    def _discard_subscription(self, subscription: Subscription) -> None:
        registry = self.wildcard_listeners if subscription.is_pattern else self.listeners
        self._remove_subscription(registry, subscription.topic, subscription)

    def _find_subscription(self, subscription_id: str) -> Subscription | None:
        for registry in (self.listeners, self.wildcard_listeners):
            for bucket in registry.values():
                for subscription in bucket:
                    if subscription.id == subscription_id:
                        return subscription
        return None

    # Middleware

    def use(self, middleware: EventBusMiddleware) -> 'EventBus':
        """Append a ``(topic, args) -> args`` transform to the middleware pipeline."""
        if not callable(middleware):
            raise TypeError(f'Invalid middleware: {middleware!r}, must be callable as middleware(topic, args)')
        self.middlewares.append(middleware)
        return self

    def remove_middleware(self, middleware: EventBusMiddleware) -> 'EventBus':
        self.middlewares = [existing for existing in self.middlewares if existing is not middleware]
        return self

    def _apply_middlewares(self, topic: str, args: list[Any]) -> list[Any]:
        processed_args = args
        for middleware in list(self.middlewares):
            try:
                # pass a copy so in-place edits by a failing middleware are discarded too
                transformed = middleware(topic, list(processed_args))
            except Exception as exc:
                self.logger.error(
                    '❌ %s middleware %s failed for topic %r, skipping it: %s\n%s',
                    self,
                    get_callable_name(middleware),
                    topic,
                    exc,
                    log_filtered_traceback(exc),
                )
                continue
            if isinstance(transformed, (str, bytes)) or not isinstance(transformed, Sequence):
                self.logger.error(
                    '❌ %s middleware %s returned %s for topic %r, expected a list of arguments, skipping it',
                    self,
                    get_callable_name(middleware),
                    type(transformed).__name__,
                    topic,
                )
                continue
            processed_args = list(transformed)
        return processed_args

    # Emission

    def get_dispatch_targets(self, topic: str) -> list[DispatchTarget]:
        """Resolve exact and wildcard subscriptions for ``topic``, in dispatch order."""
        targets: list[DispatchTarget] = [(subscription, None) for subscription in self.listeners.get(topic, ())]
        if self.config.wildcard_events:
            for pattern, bucket in self.wildcard_listeners.items():
                if matches_pattern(topic, pattern):
                    targets.extend((subscription, pattern) for subscription in bucket)
        targets.sort(key=lambda target: (-target[0].priority, target[0].sequence))
        return targets

    def _invoke(
        self,
        topic: str,
        subscription: Subscription,
        pattern: str | None,
        args: list[Any],
        allow_awaitables: bool,
    ) -> DispatchResult[Any]:
        try:
            result = subscription.invoke(*args)
        except Exception as exc:
            self.logger.error(
                '❌ %s listener %s failed for topic %r: %s\n%s',
                self,
                subscription,
                topic,
                exc,
                log_filtered_traceback(exc),
            )
            return DispatchResult.failed(subscription.id, exc, pattern)

        if inspect.iscoroutine(result) and not allow_awaitables:
            # never awaited otherwise, close it to avoid RuntimeWarning noise
            result.close()
            exc = TypeError(f'{subscription.handler_name} returned a coroutine, coroutine listeners require emit_async()')
            self.logger.warning('⚠️ %s %s', self, exc)
            return DispatchResult.failed(subscription.id, exc, pattern)

        return DispatchResult.ok(subscription.id, result, pattern)

    def _dispatch(
        self, topic: str, args: Sequence[Any], allow_awaitables: bool
    ) -> tuple[list[DispatchResult[Any]], HistoryEntry]:
        started_at = datetime.now(UTC)
        start = time.perf_counter()

        self.event_stats.record(topic, started_at)
        processed_args = self._apply_middlewares(topic, list(args))

        results: list[DispatchResult[Any]] = []
        fired_once: list[Subscription] = []
        faulty: list[Subscription] = []
        entry = HistoryEntry(
            topic=topic,
            args=snapshot_args(processed_args, self.config.max_history_args),
            timestamp=started_at,
        )

        try:
            # snapshot, listeners may call on()/off()/emit() while we iterate
            for subscription, pattern in self.get_dispatch_targets(topic):
                if not subscription.active:
                    continue
                if subscription.once:
                    if subscription.fired:
                        # already consumed by a nested emission
                        continue
                    subscription.fired = True
                    fired_once.append(subscription)

                entry.listener_count += 1
                outcome = self._invoke(topic, subscription, pattern, processed_args, allow_awaitables)
                results.append(outcome)
                if not outcome.success and self.config.remove_faulty_listeners:
                    faulty.append(subscription)
        finally:
            # runs even when a listener raises KeyboardInterrupt/SystemExit
            for subscription in (*fired_once, *faulty):
                self._discard_subscription(subscription)
            entry.duration = time.perf_counter() - start
            self.event_history.add_entry(entry)

        self._echo(
            '🗣️ %s.emit(%s) ➡️ %d listeners (%d failed) in %.2fms',
            self,
            topic,
            len(results),
            sum(1 for outcome in results if not outcome.success),
            entry.duration * 1000,
        )
        return results, entry

    def emit(self, topic: str, *args: Any) -> list[DispatchResult[Any]]:
        """
        Dispatch ``args`` to every listener of ``topic`` and return their outcomes (synchronous).

        Never raises because of a failing listener or middleware, failures show up as
        DispatchResult(success=False, error=...) entries instead.

        >>> results = bus.emit('order.created', order)
        >>> [result.result for result in results if result.success]
        """
        if not isinstance(topic, str):
            raise TypeError(f'topic must be a string, got: {type(topic).__name__}')
        results, _ = self._dispatch(topic, args, allow_awaitables=False)
        return results

    async def emit_async(self, topic: str, *args: Any) -> list[DispatchResult[Any]]:
        """
        Same dispatch pass as emit(), awaitable.

        With async_events enabled, awaitable listener results (e.g. from ``async def`` listeners)
        are awaited in dispatch order after the synchronous pass, and their outcomes updated.
        """
        if not isinstance(topic, str):
            raise TypeError(f'topic must be a string, got: {type(topic).__name__}')
        if not self.config.async_events:
            return self.emit(topic, *args)

        results, entry = self._dispatch(topic, args, allow_awaitables=True)
        awaiting_since = time.perf_counter()
        try:
            for outcome in results:
                if not outcome.success or not inspect.isawaitable(outcome.result):
                    continue
                try:
                    outcome.mark_completed(await outcome.result)
                except Exception as exc:
                    self.logger.error(
                        '❌ %s async listener #%s failed for topic %r: %s\n%s',
                        self,
                        outcome.listener_id[-4:],
                        topic,
                        exc,
                        log_filtered_traceback(exc),
                    )
                    outcome.mark_failed(exc)
                    if self.config.remove_faulty_listeners:
                        subscription = self._find_subscription(outcome.listener_id)
                        if subscription is not None:
                            self._discard_subscription(subscription)
        finally:
            # history duration covers the awaited listeners too
            entry.duration += time.perf_counter() - awaiting_since
        return results

    # Introspection

    @property
    def topics(self) -> list[str]:
        """All topics and patterns that currently have subscriptions."""
        return [*self.listeners, *self.wildcard_listeners]

    def get_listeners(self, topic: str) -> list[ListenerInfo]:
        """Snapshot of the subscriptions registered under exactly this topic or literal pattern."""
        bucket = self.listeners.get(topic)
        if bucket is None:
            bucket = self.wildcard_listeners.get(topic, [])
        return [subscription.to_listener_info() for subscription in bucket]

    def get_all_listeners(self) -> dict[str, list[ListenerInfo]]:
        return {topic: self.get_listeners(topic) for topic in self.topics}

    def listener_count(self, topic: str | None = None) -> int:
        if topic is not None:
            return len(self.listeners.get(topic, ())) + len(self.wildcard_listeners.get(topic, ()))
        return sum(len(bucket) for bucket in self.listeners.values()) + sum(
            len(bucket) for bucket in self.wildcard_listeners.values()
        )

    def get_event_stats(self) -> dict[str, TopicStats]:
        return self.event_stats.snapshot()

    def get_event_history(self, limit: int | None = 50, topic: str | None = None) -> list[HistoryEntry]:
        """Most recent ``limit`` emissions (all when None), newest last, optionally filtered by topic/pattern."""
        if topic is not None:
            return self.event_history.filter(topic, limit)
        return self.event_history.recent(limit)

    def find_in_history(
        self,
        topic: str,
        where: Callable[[HistoryEntry], bool] | None = None,
        past: bool | float | timedelta | None = None,
    ) -> HistoryEntry | None:
        return self.event_history.find(topic, where=where, past=past)

    def clear_history(self) -> None:
        self.event_history.clear()

    def log_summary(self, history_limit: int = 10) -> str:
        """Print a tree of listeners, per-topic stats and recent history."""
        return log_eventbus_summary(self, history_limit=history_limit)

    # Serialization & lifecycle

    def model_dump(self) -> dict[str, Any]:
        """JSON-compatible snapshot of options, topics and stats. Listeners cannot be serialized."""
        return {
            'id': self.id,
            'name': self.name,
            'version': LIBRARY_VERSION,
            'config': self.config.model_dump(mode='json'),
            'topics': self.topics,
            'listener_count': self.listener_count(),
            'history_size': len(self.event_history),
            'stats': {topic: stats.model_dump(mode='json') for topic, stats in self.get_event_stats().items()},
        }

    def model_dump_json(self, *, indent: int | None = None) -> str:
        return json.dumps(self.model_dump(), indent=indent)

    @classmethod
    def validate(cls, data: Any) -> 'EventBus':
        """Build a new, listener-less bus from model_dump() / model_dump_json() output."""
        if isinstance(data, (str, bytes)):
            data = json.loads(data)
        if not isinstance(data, dict):
            raise TypeError(f'EventBus.validate() expects a dict or JSON string, got: {type(data).__name__}')
        config = EventBusConfig.model_validate(data.get('config') or {})
        return cls(name=data.get('name'), id=data.get('id'), **config.model_dump())

    def destroy(self) -> None:
        """Drop all listeners, middlewares, history and stats. The bus stays usable afterwards."""
        self.remove_all_listeners()
        self.middlewares.clear()
        self.event_history.clear()
        self.event_stats.clear()
        self._echo('🧹 %s.destroy() cleared registry, middlewares, history and stats', self)


__all__ = ['DispatchTarget', 'EventBus']
