"""
Lambda Chain - Middleware Interfaces
====================================

What:  The two middleware contracts, one per handler shape.
How:   A middleware receives the next function in the chain and returns a
       replacement function of the same shape. The chain builder in
       `lambda_chain.chain` nests them around the handler.

Handler shapes:
    NoResponse[E]       async (ctx, event: E) -> None
    WithResponse[E, R]  async (ctx, event: E) -> R

Contract for implementations:
    - Call `next_fn` exactly once on every path that should reach the handler
      and return (or deliberately replace) its result.
    - Not calling `next_fn` short-circuits the chain. A validation middleware
      raising straight away is a supported pattern.
    - Let exceptions from `next_fn` propagate; run post-processing in
      `finally` where it must happen on error too.
    - Hold only read-only collaborators. One instance serves every invocation.
"""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Generic, TypeVar

from lambda_chain.context import InvocationContext

E = TypeVar("E")
R = TypeVar("R")

HandlerFunc = Callable[[InvocationContext, E], Awaitable[None]]
HandlerWithResponseFunc = Callable[[InvocationContext, E], Awaitable[R]]


class NoResponse(ABC, Generic[E]):
    """Middleware for handlers of events of type E that return no response."""

    @abstractmethod
    def wrap(self, next_fn: HandlerFunc[E]) -> HandlerFunc[E]:
        """Return a function that runs this middleware around `next_fn`."""
        ...


class WithResponse(ABC, Generic[E, R]):
    """Middleware for handlers of events of type E that return a response of type R."""

    @abstractmethod
    def wrap(self, next_fn: HandlerWithResponseFunc[E, R]) -> HandlerWithResponseFunc[E, R]:
        """Return a function that runs this middleware around `next_fn`."""
        ...
