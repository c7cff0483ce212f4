import pytest

from topicbus import EventBus, compile_pattern, is_wildcard_pattern, matches_pattern


@pytest.mark.parametrize(
    ('topic', 'pattern', 'expected'),
    [
        ('order.created', 'order.*', True),
        ('order.updated', 'order.*', True),
        ('orders.created', 'order.*', False),
        ('order.', 'order.*', True),
        ('order.item.added', 'order.*', True),  # `*` spans separators
        ('api/v1/users', 'api/*/users', True),
        ('user:1', 'user:?', True),
        ('user:12', 'user:?', False),
        ('user:', 'user:?', False),
        ('prefix.order.created', 'order.*', False),  # anchored at the start
        ('order.created.extra', '*.created', False),  # anchored at the end
        ('Order.created', 'order.*', False),  # case-sensitive
        ('a+b', 'a+?', True),
        ('aab', 'a+b', False),  # regex metacharacters are literal
        ('x(1)', 'x(?)', True),
        ('anything at all', '*', True),
    ],
)
def test_matches_pattern(topic: str, pattern: str, expected: bool) -> None:
    assert matches_pattern(topic, pattern) is expected


def test_is_wildcard_pattern() -> None:
    assert is_wildcard_pattern('order.*')
    assert is_wildcard_pattern('user:?')
    assert not is_wildcard_pattern('order.created')


def test_compile_pattern_is_cached() -> None:
    assert compile_pattern('cache.*') is compile_pattern('cache.*')


def test_wildcard_listener_fires_once_per_matching_emit() -> None:
    bus = EventBus(name='WildcardBus')
    received: list[str] = []

    bus.on('order.*', lambda topic: received.append(topic))

    bus.emit('order.created', 'order.created')
    bus.emit('order.updated', 'order.updated')
    bus.emit('orders.created', 'orders.created')

    assert received == ['order.created', 'order.updated']


def test_multiple_patterns_all_fire() -> None:
    bus = EventBus(name='MultiPatternBus')
    fired: list[str] = []

    bus.on('order.*', lambda: fired.append('order.*'))
    bus.on('*.created', lambda: fired.append('*.created'))
    bus.on('order.c??????', lambda: fired.append('order.c??????'))
    bus.on('user.*', lambda: fired.append('user.*'))
    bus.on('order.created', lambda: fired.append('exact'))

    results = bus.emit('order.created')

    assert sorted(fired) == sorted(['order.*', '*.created', 'order.c??????', 'exact'])
    assert len(results) == 4
    assert {result.pattern for result in results} == {'order.*', '*.created', 'order.c??????', None}


def test_wildcard_results_carry_pattern() -> None:
    bus = EventBus(name='PatternResultBus')
    listener_id = bus.on('job.?', lambda: 'done')

    (result,) = bus.emit('job.1')
    assert result.listener_id == listener_id
    assert result.pattern == 'job.?'
    assert result.result == 'done'


def test_wildcard_subscription_lives_in_one_bucket() -> None:
    bus = EventBus(name='OneBucketBus')
    bus.on('order.*', lambda: None)

    assert 'order.*' in bus.wildcard_listeners
    assert 'order.*' not in bus.listeners

    # emitting the literal pattern string still fires it exactly once
    assert len(bus.emit('order.*')) == 1


def test_off_removes_wildcard_subscription() -> None:
    bus = EventBus(name='WildcardOffBus')

    def handler() -> None:
        return None

    bus.on('order.*', handler)
    assert bus.off('order.*', handler) is True
    assert bus.wildcard_listeners == {}
    assert bus.emit('order.created') == []


def test_wildcards_disabled_treats_patterns_as_literal_topics() -> None:
    bus = EventBus(name='NoWildcardBus', wildcard_events=False)
    calls: list[str] = []

    bus.on('order.*', lambda: calls.append('fired'))

    assert bus.wildcard_listeners == {}
    assert bus.emit('order.created') == []
    assert len(bus.emit('order.*')) == 1
    assert calls == ['fired']
