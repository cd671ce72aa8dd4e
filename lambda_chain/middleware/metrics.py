"""
Lambda Chain - Metrics Middleware
=================================

What:  Emits a "Request started" and a "Request complete" record for every
       invocation.
How:   Reads the clock, outputs the started record with the raw event, runs
       the rest of the chain, then outputs the complete record with the
       elapsed duration. The complete record is written in `finally`, so a
       failing handler is still timed.
Who:   Usually placed after ContextMiddleware so both records carry the
       request id (see `middleware.common`).

Records:
    Request started   event=<raw event>
    Request complete  duration=<timedelta> [status_code=<int>]

`status_code` is only present for APIGatewayProxyResponse responses.
"""

from typing import List, Optional

from lambda_chain.clock import Clock, SystemClock
from lambda_chain.context import InvocationContext
from lambda_chain.events import APIGatewayProxyResponse
from lambda_chain.metrics import Field, Outputter
from lambda_chain.middleware.base import (
    E,
    R,
    HandlerFunc,
    HandlerWithResponseFunc,
    NoResponse,
    WithResponse,
)

REQUEST_STARTED_MSG = "Request started"
REQUEST_COMPLETE_MSG = "Request complete"


class MetricsMiddleware(NoResponse[E]):
    """Metrics middleware for handlers that return no response."""

    def __init__(self, outputter: Outputter, clock: Optional[Clock] = None):
        self.outputter = outputter
        self.clock = clock or SystemClock()

    def wrap(self, next_fn: HandlerFunc[E]) -> HandlerFunc[E]:
        async def wrapped(ctx: InvocationContext, event: E) -> None:
            start = self.clock.now()
            self.outputter.output(ctx, REQUEST_STARTED_MSG, [Field("event", event)])
            try:
                return await next_fn(ctx, event)
            finally:
                self.outputter.output(
                    ctx, REQUEST_COMPLETE_MSG, [Field("duration", self.clock.since(start))]
                )

        return wrapped


class MetricsWithResponseMiddleware(WithResponse[E, R]):
    """
    Metrics middleware for handlers that return a response.

    For API Gateway v1 responses the complete record also has the status code.
    """

    def __init__(self, outputter: Outputter, clock: Optional[Clock] = None):
        self.outputter = outputter
        self.clock = clock or SystemClock()

    def wrap(self, next_fn: HandlerWithResponseFunc[E, R]) -> HandlerWithResponseFunc[E, R]:
        async def wrapped(ctx: InvocationContext, event: E) -> R:
            start = self.clock.now()
            self.outputter.output(ctx, REQUEST_STARTED_MSG, [Field("event", event)])
            response = None
            try:
                response = await next_fn(ctx, event)
                return response
            finally:
                fields: List[Field] = [Field("duration", self.clock.since(start))]
                if isinstance(response, APIGatewayProxyResponse):
                    fields.append(Field("status_code", response.status_code))
                self.outputter.output(ctx, REQUEST_COMPLETE_MSG, fields)

        return wrapped
