"""
Lambda Chain - Logging Context
==============================

What:  Structured logging fields carried on the InvocationContext.
How:   `add()` derives a context with extra fields. `bind()` makes a context
       the current one for the running task (a ContextVar), and
       `ContextFieldsFilter` stamps the current fields onto every log record
       so `%(context_fields)s` can be used in the log format.
Who:   ContextMiddleware adds and binds; `main.setup_logging` installs the
       filter; handlers can read `fields(ctx)` or simply log.

ContextVar note:
    The Lambda runtime processes one invocation at a time per process, but a
    ContextVar keeps concurrent asyncio tasks (e.g. in tests or emulators)
    from seeing each other's fields.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from lambda_chain.context import InvocationContext

_current: ContextVar[Optional[InvocationContext]] = ContextVar(
    "lambda_chain_invocation_context", default=None
)


def add(ctx: InvocationContext, **fields: Any) -> InvocationContext:
    """Return a new context carrying `fields` in addition to the existing ones."""
    if not fields:
        return ctx
    return ctx.with_fields(**fields)


def fields(ctx: InvocationContext) -> Dict[str, Any]:
    """Return a plain dict copy of the context's logging fields."""
    return dict(ctx.log_fields)


def current() -> Optional[InvocationContext]:
    """The context bound to the running task, if any."""
    return _current.get()


@contextmanager
def bind(ctx: InvocationContext) -> Iterator[InvocationContext]:
    """Make `ctx` the current context until the block exits (also on error)."""
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


class ContextFieldsFilter(logging.Filter):
    """
    Copies the current context's fields onto each LogRecord.

    Adds two attributes:
        context_fields: "name=value name=value" string for text formats
        log_fields:     the raw dict for JSON/structured handlers
    Records logged outside any bound context get empty values.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _current.get()
        values = dict(ctx.log_fields) if ctx is not None else {}
        record.log_fields = values
        record.context_fields = " ".join(f"{k}={v}" for k, v in values.items())
        return True
