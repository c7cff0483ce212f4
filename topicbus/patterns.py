"""Wildcard topic patterns.

``*`` matches any run of characters (separators included) and ``?`` matches
exactly one character. Everything else is literal. Matching is anchored and
case-sensitive.
"""

import re
from functools import lru_cache

WILDCARD_CHARS = ('*', '?')


def is_wildcard_pattern(topic: str) -> bool:
    return any(char in topic for char in WILDCARD_CHARS)


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a wildcard pattern into a compiled regex."""
    parts: list[str] = []
    for char in pattern:
        if char == '*':
            parts.append('.*')
        elif char == '?':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    # DOTALL so that `*` and `?` also match newlines inside topic names
    return re.compile(''.join(parts), re.DOTALL)


def matches_pattern(topic: str, pattern: str) -> bool:
    return compile_pattern(pattern).fullmatch(topic) is not None


__all__ = ['WILDCARD_CHARS', 'compile_pattern', 'is_wildcard_pattern', 'matches_pattern']
