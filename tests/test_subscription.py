from typing import Any

import pytest
from pydantic import ValidationError

from topicbus import EventBus, EventTypes, Subscription, format_eventbus_summary
from topicbus.subscription import bind_to_context


def sample_listener(value: Any) -> Any:
    return value


def test_from_callable_populates_metadata() -> None:
    subscription = Subscription.from_callable(topic='sample', handler=sample_listener, priority=2, sequence=7)

    assert subscription.id
    assert subscription.handler is sample_listener
    assert subscription.handler_name == f'{__name__}.sample_listener'
    assert subscription.handler_file_path is not None
    assert 'test_subscription.py' in subscription.handler_file_path
    assert subscription.priority == 2
    assert subscription.sequence == 7
    assert subscription.invoke('x') == 'x'
    assert str(subscription).startswith(f'{__name__}.sample_listener()')


def test_serialization_excludes_callables() -> None:
    subscription = Subscription.from_callable(topic='sample', handler=sample_listener, context=object())
    dumped = subscription.model_dump()

    assert 'handler' not in dumped
    assert 'original_handler' not in dumped
    assert 'context' not in dumped
    assert dumped['topic'] == 'sample'


def test_invalid_subscription_fields() -> None:
    with pytest.raises(ValidationError):
        Subscription.from_callable(topic='', handler=sample_listener)
    with pytest.raises(TypeError):
        Subscription.from_callable(topic='sample', handler=None)  # type: ignore[arg-type]


def test_bind_to_context_without_context_returns_handler() -> None:
    assert bind_to_context(sample_listener, None) is sample_listener


def test_callable_objects_are_supported() -> None:
    class Multiplier:
        def __init__(self, factor: int) -> None:
            self.factor = factor

        def __call__(self, value: int) -> int:
            return value * self.factor

    bus = EventBus(name='CallableObjectBus')
    triple = Multiplier(3)
    bus.on('multiply', triple)

    assert [result.result for result in bus.emit('multiply', 4)] == [12]
    assert bus.off('multiply', triple) is True


def test_event_types_are_plain_topic_strings() -> None:
    bus = EventBus(name='EventTypesBus')
    bus.on('user:*', lambda name: name)

    (result,) = bus.emit(EventTypes.USER_LOGIN, 'frank')

    assert EventTypes.USER_LOGIN == 'user:login'
    assert result.result == 'frank'
    assert 'user:login' in bus.get_event_stats()


def test_summary_lists_listeners_stats_and_history() -> None:
    bus = EventBus(name='SummaryBus')
    bus.on('order.created', sample_listener, priority=3)
    bus.once('order.*', sample_listener)
    bus.emit('order.created', 1)

    summary = format_eventbus_summary(bus)

    assert 'SummaryBus' in summary
    assert 'order.created' in summary
    assert 'priority=3' in summary
    assert 'count=1' in summary
    assert 'listeners=2' in summary
