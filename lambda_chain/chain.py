"""
Lambda Chain - Handlers and Chain Composition
=============================================

What:  Handler interfaces and the functions that nest middleware around them.
How:   The middleware list is folded from the end, so the first middleware
       listed is the outermost one:

           wrap_handler(h, m1, m2, m3)  ==  m1.wrap(m2.wrap(m3.wrap(h)))

       Execution order for one invocation:
           m1 pre → m2 pre → m3 pre → handler → m3 post → m2 post → m1 post

Who:   Called by `lambda_chain.main.start*`; usable on its own to build a
       composed function for tests or other runtimes.

The no-response and with-response paths are kept parallel on purpose; a
middleware list is always homogeneous in its shape.
"""

from abc import ABC, abstractmethod
from typing import Callable, Generic, TypeVar, Union

from lambda_chain.context import InvocationContext
from lambda_chain.middleware.base import (
    HandlerFunc,
    HandlerWithResponseFunc,
    NoResponse,
    WithResponse,
)

E = TypeVar("E")
R = TypeVar("R")


class Handler(ABC, Generic[E]):
    """Implemented by handlers of events of type E that return no response."""

    @abstractmethod
    async def handle(self, ctx: InvocationContext, event: E) -> None:
        """Handle one event. Raise to report a failed invocation."""
        ...


class HandlerWithResponse(ABC, Generic[E, R]):
    """Implemented by handlers of events of type E that return a response of type R."""

    @abstractmethod
    async def handle(self, ctx: InvocationContext, event: E) -> R:
        """Handle one event and return the response."""
        ...


def _handler_fn(handler: Union[Handler, HandlerWithResponse, Callable]) -> Callable:
    """Accept either a Handler instance or a bare async function."""
    if isinstance(handler, (Handler, HandlerWithResponse)):
        return handler.handle
    if callable(handler):
        return handler
    raise TypeError(f"handler must be a Handler or an async callable, got {type(handler).__name__}")


def wrap_handler(
    handler: Union[Handler[E], HandlerFunc[E]],
    *middlewares: NoResponse[E],
) -> HandlerFunc[E]:
    """Compose `middlewares` around a no-response handler."""
    handler_fn: HandlerFunc[E] = _handler_fn(handler)
    for mw in reversed(middlewares):
        handler_fn = mw.wrap(handler_fn)
    return handler_fn


def wrap_handler_with_response(
    handler: Union[HandlerWithResponse[E, R], HandlerWithResponseFunc[E, R]],
    *middlewares: WithResponse[E, R],
) -> HandlerWithResponseFunc[E, R]:
    """Compose `middlewares` around a handler that returns a response."""
    handler_fn: HandlerWithResponseFunc[E, R] = _handler_fn(handler)
    for mw in reversed(middlewares):
        handler_fn = mw.wrap(handler_fn)
    return handler_fn

