"""
Lambda Chain - Test Configuration (conftest.py)
===============================================

What:  Shared pytest fixtures for the test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── lambda_ctx:        InvocationContext carrying a runtime request id
    ├── empty_ctx:         InvocationContext outside Lambda
    ├── fixed_clock:       FixedClock (durations are always zero)
    ├── mock_outputter:    MagicMock standing in for a metrics Outputter
    ├── apigw_request:     APIGatewayProxyRequest with a request context
    └── fake_runtime:      Starlette app faking the Lambda Runtime API
"""

import asyncio
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import httpx
import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route

from lambda_chain.context import InvocationContext, LambdaContext
from lambda_chain.events import APIGatewayProxyRequest, APIGatewayProxyRequestContext
from lambda_chain.metrics import Outputter

# Keep retries short and logging quiet during tests
os.environ.setdefault("RUNTIME_RETRY_MIN_WAIT", "0")
os.environ.setdefault("RUNTIME_RETRY_MAX_WAIT", "0.1")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture
def lambda_ctx():
    """Context as built by the runtime for request 'lambda-request-id-123'."""
    return InvocationContext(lambda_context=LambdaContext(aws_request_id="lambda-request-id-123"))


@pytest.fixture
def empty_ctx():
    """Context with no Lambda runtime information."""
    return InvocationContext()


@pytest.fixture
def fixed_clock():
    from lambda_chain.clock import FixedClock

    return FixedClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def mock_outputter():
    """
    Provides a MagicMock with the Outputter interface.

    Usage:
        labels = [c.args[1] for c in mock_outputter.output.call_args_list]
    """
    return MagicMock(spec=Outputter)


@pytest.fixture
def apigw_request():
    return APIGatewayProxyRequest(
        path="/notes",
        http_method="GET",
        request_context=APIGatewayProxyRequestContext(
            request_id="amzn-request-id-123",
            http_method="GET",
            domain_name="api.example.com",
            path="/prod/notes",
        ),
    )


# ══════════════════════════════════════════════════════════════════════════
# Fake Lambda Runtime API
# ══════════════════════════════════════════════════════════════════════════

class FakeRuntimeAPI:
    """
    In-process stand-in for the Lambda Runtime API.

    Queued events are handed out in order by the next-invocation route; once
    the queue is empty that route answers HTTP 500, which ends a serve loop,
    unless `hold_when_empty` is set, in which case it blocks like the real API.
    Everything posted back is recorded for assertions, and `calls` keeps the
    order in which requests arrived.
    """

    def __init__(self):
        self.events: List[Tuple[str, bytes, Dict[str, str]]] = []
        self.responses: Dict[str, bytes] = {}
        self.errors: Dict[str, Tuple[dict, Optional[str]]] = {}
        self.init_errors: List[dict] = []
        self.extensions: List[str] = []
        self.extension_polls: List[str] = []
        self.calls: List[str] = []
        self.hold_when_empty = False
        self.app = Starlette(
            routes=[
                Route("/2018-06-01/runtime/invocation/next", self.next_invocation, methods=["GET"]),
                Route(
                    "/2018-06-01/runtime/invocation/{request_id}/response",
                    self.invocation_response,
                    methods=["POST"],
                ),
                Route(
                    "/2018-06-01/runtime/invocation/{request_id}/error",
                    self.invocation_error,
                    methods=["POST"],
                ),
                Route("/2018-06-01/runtime/init/error", self.init_error, methods=["POST"]),
                Route("/2020-01-01/extension/register", self.register_extension, methods=["POST"]),
                Route("/2020-01-01/extension/event/next", self.extension_event_next, methods=["GET"]),
            ]
        )

    def queue(self, request_id: str, payload: bytes, **headers: str) -> None:
        self.events.append((request_id, payload, headers))

    def transport(self) -> httpx.ASGITransport:
        return httpx.ASGITransport(app=self.app)

    async def next_invocation(self, request: Request) -> Response:
        self.calls.append(f"GET {request.url.path}")
        if not self.events and self.hold_when_empty:
            await asyncio.Event().wait()
        if not self.events:
            return Response(status_code=500)
        request_id, payload, headers = self.events.pop(0)
        return Response(
            content=payload,
            media_type="application/json",
            headers={
                "Lambda-Runtime-Aws-Request-Id": request_id,
                "Lambda-Runtime-Deadline-Ms": "1700000000000",
                "Lambda-Runtime-Invoked-Function-Arn": "arn:aws:lambda:eu-west-1:123456789012:function:test",
                **headers,
            },
        )

    async def invocation_response(self, request: Request) -> Response:
        self.calls.append(f"POST {request.url.path}")
        self.responses[request.path_params["request_id"]] = await request.body()
        return Response(status_code=202)

    async def invocation_error(self, request: Request) -> Response:
        self.errors[request.path_params["request_id"]] = (
            await request.json(),
            request.headers.get("Lambda-Runtime-Function-Error-Type"),
        )
        return Response(status_code=202)

    async def init_error(self, request: Request) -> Response:
        self.init_errors.append(await request.json())
        return Response(status_code=202)

    async def register_extension(self, request: Request) -> Response:
        self.calls.append(f"POST {request.url.path}")
        self.extensions.append(request.headers.get("Lambda-Extension-Name", ""))
        return Response(status_code=200, headers={"Lambda-Extension-Identifier": "ext-1"})

    async def extension_event_next(self, request: Request) -> Response:
        """Held open: an extension subscribed to no events only returns at shutdown."""
        self.calls.append(f"GET {request.url.path}")
        self.extension_polls.append(request.headers.get("Lambda-Extension-Identifier", ""))
        await asyncio.Event().wait()
        return Response(status_code=200)


@pytest.fixture
def fake_runtime():
    return FakeRuntimeAPI()
