"""
Lambda Chain - Metrics Output
=============================

What:  The sink the metrics middleware writes its records to.
How:   A record is a label plus an ordered list of `Field(name, value)` pairs,
       handed to `Outputter.output()` in one call. `LoggingOutputter` writes
       each record as a single log line on the `lambda_chain.metrics` logger.
Who:   Constructed by the function's entry point and injected into
       MetricsMiddleware (directly or through the `common*` presets).

Log line example:
    2024-01-15T12:00:00 [INFO] lambda_chain.metrics: Request complete duration=0:00:00.004211 status_code=200
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, NamedTuple, Optional, Sequence

from lambda_chain.context import InvocationContext


class Field(NamedTuple):
    """One name/value pair of a metrics record."""

    name: str
    value: Any


class Outputter(ABC):
    """
    Receives metrics records.

    Contract:
        - Fire-and-forget: returns nothing, must not raise into the chain
        - Called from concurrent invocations; implementations keep no
          per-invocation state
    """

    @abstractmethod
    def output(self, ctx: InvocationContext, label: str, fields: Sequence[Field]) -> None:
        ...


class LoggingOutputter(Outputter):
    """
    Writes metrics records through the standard logging module.

    The fields are rendered into the message as ``name=value`` pairs and also
    attached to the record as ``extra={"metrics": {...}}`` for structured
    handlers. The invocation's log fields ride along via ContextFieldsFilter.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger("lambda_chain.metrics")
        self.level = level

    def output(self, ctx: InvocationContext, label: str, fields: Sequence[Field]) -> None:
        pairs: List[str] = [f"{f.name}={f.value}" for f in fields]
        self.logger.log(
            self.level,
            "%s %s",
            label,
            " ".join(pairs),
            extra={
                "metrics": {f.name: f.value for f in fields},
                "request_id": ctx.log_fields.get("request_id", ""),
            },
        )
