import inspect
import os
from collections.abc import Callable, Sequence
from pathlib import Path
from traceback import TracebackException
from typing import Any

_INTERNAL_FRAME_MARKER = f'{os.sep}topicbus{os.sep}'


def log_filtered_traceback(exc: BaseException) -> str:
    """Format a traceback without the bus's own dispatch frames."""
    tb_exc = TracebackException.from_exception(exc, capture_locals=False)
    tb_exc.stack[:] = [frame for frame in tb_exc.stack if _INTERNAL_FRAME_MARKER not in frame.filename]
    return ''.join(tb_exc.format())


def snapshot_args(args: Sequence[Any], max_args: int) -> list[Any]:
    """Keep only the first ``max_args`` arguments for history records."""
    return list(args[:max_args]) if len(args) > max_args else list(args)


def format_source_path(path: str, line_no: int | None = None) -> str:
    normalized = str(Path(path).expanduser().resolve())
    home = str(Path.home())
    if normalized == home:
        display = '~'
    elif normalized.startswith(home + os.sep):
        display = f'~{normalized[len(home) :]}'
    else:
        display = normalized
    return f'{display}:{line_no}' if line_no else display


def get_callable_name(handler: Callable[..., Any]) -> str:
    if inspect.ismethod(handler):
        return f'{type(handler.__self__).__name__}.{handler.__name__}'
    handler_module = getattr(handler, '__module__', None) or '<unknown>'
    handler_name = getattr(handler, '__qualname__', None) or getattr(handler, '__name__', None) or type(handler).__name__
    return f'{handler_module}.{handler_name}'


def get_callable_file_path(handler: Callable[..., Any]) -> str | None:
    """Best-effort, low-overhead source location for a callable."""
    target: Any = handler.__func__ if inspect.ismethod(handler) else handler
    try:
        target = inspect.unwrap(target)
    except ValueError:
        return None

    code_obj = getattr(target, '__code__', None)
    if code_obj is not None:
        file_path = getattr(code_obj, 'co_filename', None)
        line_no = getattr(code_obj, 'co_firstlineno', None)
        if isinstance(file_path, str) and file_path.strip():
            return format_source_path(file_path, line_no if isinstance(line_no, int) else None)

    try:
        source_file = inspect.getsourcefile(target) or inspect.getfile(target)
    except (OSError, TypeError):
        source_file = None

    if isinstance(source_file, str) and source_file.strip():
        return format_source_path(source_file)
    return None
