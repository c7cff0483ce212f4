import inspect
import time
from collections.abc import Callable
from datetime import UTC, datetime
from types import MethodType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from uuid_extensions import uuid7str  # pyright: ignore[reportMissingImports, reportUnknownVariableType]

from topicbus.helpers import get_callable_file_path, get_callable_name

uuid7str: Callable[[], str] = uuid7str  # pyright: ignore

ListenerCallable = Callable[..., Any]


def bind_to_context(handler: ListenerCallable, context: Any) -> ListenerCallable:
    """Bind ``handler`` so that ``context`` is passed as its first argument.

    Already-bound methods are re-bound: the original receiver is replaced,
    never stacked.
    """
    if context is None:
        return handler
    if inspect.ismethod(handler):
        return MethodType(handler.__func__, context)
    return MethodType(handler, context)


class ListenerInfo(BaseModel):
    """Read-only snapshot of one subscription, safe to hand out to callers."""

    model_config = ConfigDict(frozen=True)

    id: str
    topic: str
    priority: int
    once: bool
    registered_at: datetime
    handler_name: str


class Subscription(BaseModel):
    """A registered listener callable plus its dispatch metadata."""

    model_config = ConfigDict(
        extra='forbid',
        arbitrary_types_allowed=True,
        validate_assignment=False,
    )

    id: str = Field(default_factory=uuid7str)
    topic: str
    handler: ListenerCallable = Field(exclude=True, repr=False)
    original_handler: ListenerCallable = Field(exclude=True, repr=False)
    handler_name: str = 'anonymous'
    handler_file_path: str | None = None
    priority: int = 0
    once: bool = False
    context: Any = Field(default=None, exclude=True, repr=False)
    is_pattern: bool = False
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    registered_ts: float = Field(default_factory=time.monotonic)
    sequence: int = 0

    # runtime flags, flipped by the bus during dispatch
    active: bool = Field(default=True, exclude=True)
    fired: bool = Field(default=False, exclude=True)

    @field_validator('topic')
    @classmethod
    def _validate_topic(cls, value: str) -> str:
        if not value:
            raise ValueError('topic must be a non-empty string')
        return value

    @field_validator('priority', mode='before')
    @classmethod
    def _validate_priority(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f'priority must be an integer, got {type(value).__name__}')
        return value

    @classmethod
    def from_callable(
        cls,
        *,
        topic: str,
        handler: ListenerCallable,
        priority: int = 0,
        once: bool = False,
        context: Any = None,
        is_pattern: bool = False,
        sequence: int = 0,
        detect_file_path: bool = True,
    ) -> 'Subscription':
        if not callable(handler):
            raise TypeError(f'Listener {handler!r} must be callable, got: {type(handler).__name__}')
        return cls(
            topic=topic,
            handler=bind_to_context(handler, context),
            original_handler=handler,
            handler_name=get_callable_name(handler),
            handler_file_path=get_callable_file_path(handler) if detect_file_path else None,
            priority=priority,
            once=once,
            context=context,
            is_pattern=is_pattern,
            sequence=sequence,
        )

    @property
    def label(self) -> str:
        return f'{self.handler_name}#{self.id[-4:]}'

    def __str__(self) -> str:
        display = f'{self.handler_name}()'
        return f'{display} @ {self.handler_file_path}' if self.handler_file_path else display

    def invoke(self, *args: Any) -> Any:
        return self.handler(*args)

    def matches_handler(self, handler: ListenerCallable) -> bool:
        """True when ``handler`` is the callable this subscription was created from."""
        for candidate in (self.original_handler, self.handler):
            if candidate is handler:
                return True
            # bound methods are re-created on every attribute access
            if inspect.ismethod(handler) and candidate == handler:
                return True
        return False

    def to_listener_info(self) -> ListenerInfo:
        return ListenerInfo(
            id=self.id,
            topic=self.topic,
            priority=self.priority,
            once=self.once,
            registered_at=self.registered_at,
            handler_name=self.handler_name,
        )


__all__ = ['ListenerCallable', 'ListenerInfo', 'Subscription', 'bind_to_context']
