import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

_current_span: ContextVar[Optional['Span']] = ContextVar('bingo_span', default=None)


@dataclass
class Span:
    '''Timing record for one step of event processing.'''

    name: str
    attrs: Dict[str, Any] = field(default_factory=dict)
    parent: Optional['Span'] = None
    started: float = field(default_factory=time.perf_counter)
    elapsed_ms: Optional[float] = None
    failed: bool = False

    @property
    def depth(self) -> int:
        return 0 if self.parent is None else self.parent.depth + 1

    def close(self) -> None:
        self.elapsed_ms = (time.perf_counter() - self.started) * 1000
        attrs = ', '.join(f'{k}={v}' for k, v in self.attrs.items())
        status = 'failed' if self.failed else 'ok'
        logger.debug(
            f'{"  " * self.depth}{self.name} {status} in {self.elapsed_ms:.2f}ms [{attrs}]'
        )


@contextmanager
def trace_span(name: str, attrs: Optional[Dict[str, Any]] = None) -> Iterator[Span]:
    '''Time a block, nesting under whichever span is active in this context.

    Example:
        with trace_span('engine.requirement', {'key': key}):
            ...
    '''
    span = Span(name=name, attrs=dict(attrs or {}), parent=_current_span.get())
    token = _current_span.set(span)
    try:
        yield span
    except BaseException:
        span.failed = True
        raise
    finally:
        span.close()
        _current_span.reset(token)


def current_span() -> Optional[Span]:
    return _current_span.get()


def tag_span(key: str, value: Any) -> None:
    '''Attach an attribute to the active span, if any.'''
    span = _current_span.get()
    if span is not None:
        span.attrs[key] = value
