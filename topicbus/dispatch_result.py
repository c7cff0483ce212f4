from typing import Any, Generic

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import TypeVar  # needed to get TypeVar(default=...) above python 3.11

T_Result = TypeVar('T_Result', default=Any)


class DispatchResult(BaseModel, Generic[T_Result]):
    """Outcome of invoking one listener during one emission."""

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=False)

    listener_id: str
    success: bool
    result: T_Result | None = None
    error: str | None = None
    pattern: str | None = None
    exception: Exception | None = Field(default=None, exclude=True, repr=False)

    @classmethod
    def ok(cls, listener_id: str, result: Any, pattern: str | None = None) -> 'DispatchResult[Any]':
        return cls(listener_id=listener_id, success=True, result=result, pattern=pattern)

    @classmethod
    def failed(cls, listener_id: str, exc: Exception, pattern: str | None = None) -> 'DispatchResult[Any]':
        return cls(listener_id=listener_id, success=False, error=str(exc) or type(exc).__name__, pattern=pattern, exception=exc)

    def mark_failed(self, exc: Exception) -> None:
        self.success = False
        self.result = None
        self.error = str(exc) or type(exc).__name__
        self.exception = exc

    def mark_completed(self, result: Any) -> None:
        self.success = True
        self.result = result
        self.error = None
        self.exception = None


__all__ = ['DispatchResult']
