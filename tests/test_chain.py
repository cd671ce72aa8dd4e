"""
Lambda Chain - Chain Composition Tests
======================================

What:  Tests for wrap_handler / wrap_handler_with_response.
How:   Tagging middleware append their id to the event on the way in and to
       the response on the way out, which makes the nesting order visible.

What we test:
    ✅ Empty middleware list behaves like the bare handler
    ✅ First listed middleware is outermost (in: m1,m2,m3; out: m3,m2,m1)
    ✅ Handler exceptions propagate through every middleware unchanged
    ✅ A middleware may short-circuit without calling next
    ✅ Handler ABC instances and bare async functions are both accepted
"""

from typing import List
from unittest.mock import AsyncMock

import pytest

from lambda_chain.chain import (
    Handler,
    HandlerWithResponse,
    wrap_handler,
    wrap_handler_with_response,
)
from lambda_chain.middleware.base import NoResponse, WithResponse


class HandlerError(Exception):
    pass


class TagMiddleware(NoResponse[List[str]]):
    def __init__(self, tag: str):
        self.tag = tag

    def wrap(self, next_fn):
        async def wrapped(ctx, event):
            return await next_fn(ctx, event + [self.tag])

        return wrapped


class TagMiddlewareWithResponse(WithResponse[List[str], List[str]]):
    def __init__(self, tag: str):
        self.tag = tag

    def wrap(self, next_fn):
        async def wrapped(ctx, event):
            response = await next_fn(ctx, event + [self.tag])
            return response + [self.tag]

        return wrapped


class RejectMiddleware(WithResponse[List[str], List[str]]):
    """Never calls next."""

    def wrap(self, next_fn):
        async def wrapped(ctx, event):
            return ["rejected"]

        return wrapped


class TestWrapHandler:
    """Tests for the no-response chain."""

    @pytest.mark.asyncio
    async def test_no_middleware_calls_handler(self, empty_ctx):
        """Without middleware the handler receives the event as-is."""
        handler = AsyncMock(return_value=None)
        fn = wrap_handler(handler)

        assert await fn(empty_ctx, ["event"]) is None
        handler.assert_awaited_once_with(empty_ctx, ["event"])

    @pytest.mark.asyncio
    async def test_no_middleware_propagates_error(self, empty_ctx):
        handler = AsyncMock(side_effect=HandlerError("boom"))
        fn = wrap_handler(handler)

        with pytest.raises(HandlerError):
            await fn(empty_ctx, ["event"])

    @pytest.mark.asyncio
    async def test_one_middleware(self, empty_ctx):
        handler = AsyncMock(return_value=None)
        fn = wrap_handler(handler, TagMiddleware("middleware-1"))

        await fn(empty_ctx, ["event"])
        handler.assert_awaited_once_with(empty_ctx, ["event", "middleware-1"])

    @pytest.mark.asyncio
    async def test_three_middleware_in_order(self, empty_ctx):
        """The event passes through middleware in list order."""
        handler = AsyncMock(return_value=None)
        fn = wrap_handler(
            handler,
            TagMiddleware("middleware-1"),
            TagMiddleware("middleware-2"),
            TagMiddleware("middleware-3"),
        )

        await fn(empty_ctx, ["event"])
        handler.assert_awaited_once_with(
            empty_ctx, ["event", "middleware-1", "middleware-2", "middleware-3"]
        )

    @pytest.mark.asyncio
    async def test_three_middleware_handler_error(self, empty_ctx):
        """The same exception object reaches the caller."""
        err = HandlerError("boom")
        handler = AsyncMock(side_effect=err)
        fn = wrap_handler(
            handler,
            TagMiddleware("middleware-1"),
            TagMiddleware("middleware-2"),
            TagMiddleware("middleware-3"),
        )

        with pytest.raises(HandlerError) as exc_info:
            await fn(empty_ctx, ["event"])
        assert exc_info.value is err
        handler.assert_awaited_once_with(
            empty_ctx, ["event", "middleware-1", "middleware-2", "middleware-3"]
        )

    @pytest.mark.asyncio
    async def test_handler_instance(self, empty_ctx):
        """Handler subclasses are unwrapped to their handle() method."""
        seen = []

        class Recorder(Handler[List[str]]):
            async def handle(self, ctx, event):
                seen.append(event)

        fn = wrap_handler(Recorder(), TagMiddleware("m1"))
        await fn(empty_ctx, ["event"])

        assert seen == [["event", "m1"]]

    def test_rejects_non_callable_handler(self):
        with pytest.raises(TypeError):
            wrap_handler("not a handler")


class TestWrapHandlerWithResponse:
    """Tests for the response-bearing chain."""

    @pytest.mark.asyncio
    async def test_no_middleware_returns_handler_response(self, empty_ctx):
        handler = AsyncMock(return_value=["response"])
        fn = wrap_handler_with_response(handler)

        assert await fn(empty_ctx, ["event"]) == ["response"]
        handler.assert_awaited_once_with(empty_ctx, ["event"])

    @pytest.mark.asyncio
    async def test_no_middleware_propagates_error(self, empty_ctx):
        handler = AsyncMock(side_effect=HandlerError("boom"))
        fn = wrap_handler_with_response(handler)

        with pytest.raises(HandlerError):
            await fn(empty_ctx, ["event"])

    @pytest.mark.asyncio
    async def test_one_middleware(self, empty_ctx):
        handler = AsyncMock(return_value=["response"])
        fn = wrap_handler_with_response(handler, TagMiddlewareWithResponse("middleware-1"))

        assert await fn(empty_ctx, ["event"]) == ["response", "middleware-1"]
        handler.assert_awaited_once_with(empty_ctx, ["event", "middleware-1"])

    @pytest.mark.asyncio
    async def test_three_middleware_in_order(self, empty_ctx):
        """Event tags go m1,m2,m3; response tags come back m3,m2,m1."""
        handler = AsyncMock(return_value=["response"])
        fn = wrap_handler_with_response(
            handler,
            TagMiddlewareWithResponse("middleware-1"),
            TagMiddlewareWithResponse("middleware-2"),
            TagMiddlewareWithResponse("middleware-3"),
        )

        response = await fn(empty_ctx, ["event"])

        handler.assert_awaited_once_with(
            empty_ctx, ["event", "middleware-1", "middleware-2", "middleware-3"]
        )
        assert response == ["response", "middleware-3", "middleware-2", "middleware-1"]

    @pytest.mark.asyncio
    async def test_three_middleware_handler_error(self, empty_ctx):
        handler = AsyncMock(side_effect=HandlerError("boom"))
        fn = wrap_handler_with_response(
            handler,
            TagMiddlewareWithResponse("middleware-1"),
            TagMiddlewareWithResponse("middleware-2"),
            TagMiddlewareWithResponse("middleware-3"),
        )

        with pytest.raises(HandlerError):
            await fn(empty_ctx, ["event"])

    @pytest.mark.asyncio
    async def test_short_circuit_skips_inner_chain(self, empty_ctx):
        """A middleware that never calls next stops the chain there."""
        handler = AsyncMock(return_value=["response"])
        fn = wrap_handler_with_response(
            handler,
            TagMiddlewareWithResponse("outer"),
            RejectMiddleware(),
            TagMiddlewareWithResponse("inner"),
        )

        assert await fn(empty_ctx, ["event"]) == ["rejected", "outer"]
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_handler_instance(self, empty_ctx):
        class Echo(HandlerWithResponse[List[str], List[str]]):
            async def handle(self, ctx, event):
                return list(event)

        fn = wrap_handler_with_response(Echo(), TagMiddlewareWithResponse("m1"))

        assert await fn(empty_ctx, ["event"]) == ["event", "m1", "m1"]
