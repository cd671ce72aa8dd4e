"""
Lambda Chain - Invocation Context
=================================

What:  The request-scoped carrier passed as the first argument through every
       middleware and handler.
How:   Frozen dataclasses. Middleware never mutate a context; they derive a
       new one with `with_fields()` and hand that to the next function.
Who:   Built by the runtime adapter for every invocation, enriched by
       ContextMiddleware, read by handlers and outputters.

Structure:
    InvocationContext
    ├── lambda_context: LambdaContext | None   (runtime-assigned identity)
    └── log_fields: Mapping[str, Any]           (structured logging fields)
"""

import time
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class LambdaContext:
    """
    Per-invocation metadata supplied by the Lambda Runtime API.

    The request id and deadline come from the `Lambda-Runtime-*` headers of
    the next-invocation response; the function description comes from the
    environment (see `lambda_chain.config`).
    """

    aws_request_id: str
    invoked_function_arn: str = ""
    deadline_ms: int = 0
    trace_id: str = ""
    client_context: Optional[str] = None
    cognito_identity: Optional[str] = None
    function_name: str = ""
    function_version: str = ""
    memory_limit_in_mb: int = 0
    log_group_name: str = ""
    log_stream_name: str = ""

    def get_remaining_time_in_millis(self) -> int:
        """Milliseconds left before Lambda terminates this invocation."""
        if not self.deadline_ms:
            return 0
        return max(0, self.deadline_ms - int(time.time() * 1000))


@dataclass(frozen=True)
class InvocationContext:
    """Immutable request-scoped context threaded through the chain."""

    lambda_context: Optional[LambdaContext] = None
    log_fields: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def with_fields(self, **fields: Any) -> "InvocationContext":
        """
        Return a copy of this context with `fields` merged into its log fields.

        Later values replace earlier ones with the same name; insertion order
        of first appearance is kept.
        """
        merged = dict(self.log_fields)
        merged.update(fields)
        return replace(self, log_fields=MappingProxyType(merged))


def lambda_context_from(ctx: InvocationContext) -> Optional[LambdaContext]:
    """Return the runtime-assigned Lambda context, or None outside Lambda."""
    return ctx.lambda_context
