"""Reusable EventBus middleware helpers.

A middleware is any callable ``(topic, args) -> args`` applied to every
emission before dispatch, in registration order. Raising from a middleware
discards its transformation for that emission only.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_json

from topicbus.patterns import is_wildcard_pattern, matches_pattern

__all__ = [
    'EventBusMiddleware',
    'LoggerMiddleware',
    'SchemaValidatorMiddleware',
    'WALMiddleware',
]

logger = logging.getLogger('topicbus.middleware')

EventBusMiddleware = Callable[[str, list[Any]], Sequence[Any]]


class LoggerMiddleware:
    """Log every emission and optionally append it to a text file."""

    def __init__(self, log_path: Path | str | None = None, level: int = logging.INFO):
        self.log_path = Path(log_path) if log_path is not None else None
        self.level = level
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def __call__(self, topic: str, args: list[Any]) -> list[Any]:
        logger.log(self.level, '📣 emit(%s) args=%r', topic, args)
        if self.log_path is not None:
            self._write_line(f'[{datetime.now(UTC).isoformat()}] {topic} {args!r}\n')
        return args

    def _write_line(self, line: str) -> None:
        with self.log_path.open('a', encoding='utf-8') as fp:  # type: ignore[union-attr]
            fp.write(line)


class WALMiddleware:
    """Append one JSON line per emission to a write-ahead log file.

    Arguments that are not JSON-serializable are written as their ``str()``.
    """

    def __init__(self, wal_path: Path | str):
        self.wal_path = Path(wal_path)
        self.wal_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def __call__(self, topic: str, args: list[Any]) -> list[Any]:
        record = {'topic': topic, 'args': args, 'timestamp': datetime.now(UTC)}
        try:
            line = to_json(record, serialize_unknown=True).decode('utf-8')
            self._write_line(line + '\n')
        except OSError as exc:
            logger.error('❌ Failed to write emission of %s to WAL %s: %s', topic, self.wal_path, exc)
        return args

    def _write_line(self, line: str) -> None:
        with self._lock:
            with self.wal_path.open('a', encoding='utf-8') as fp:
                fp.write(line)


class SchemaValidatorMiddleware:
    """Validate the first argument of matching topics against a pydantic model.

    ``schemas`` maps topics or wildcard patterns to models. The first matching
    key wins. On success the first argument is replaced by the validated model
    instance; a ``pydantic.ValidationError`` propagates to the bus, which logs
    it and keeps the unvalidated arguments.
    """

    def __init__(self, schemas: Mapping[str, type[BaseModel]]):
        self.schemas = dict(schemas)

    def schema_for(self, topic: str) -> type[BaseModel] | None:
        exact = self.schemas.get(topic)
        if exact is not None:
            return exact
        for pattern, schema in self.schemas.items():
            if is_wildcard_pattern(pattern) and matches_pattern(topic, pattern):
                return schema
        return None

    def __call__(self, topic: str, args: list[Any]) -> list[Any]:
        schema = self.schema_for(topic)
        if schema is None:
            return args
        if not args:
            raise ValueError(f'{topic} requires a payload matching {schema.__name__}')
        return [schema.model_validate(args[0]), *args[1:]]
