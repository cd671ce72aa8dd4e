# Middleware package init
"""
Lambda Chain - Middleware Package
=================================

What:  Cross-cutting concerns applied around every invocation.

Middleware Chain (order matters!):
    Event → [Context] → [Metrics] → Handler

    1. Context first: binds request_id so everything after it logs with it
    2. Metrics: "Request started" / "Request complete" records

    The order is reversed for responses:
    Response ← [Context] ← [Metrics] ← Handler

    This means:
    - Metrics sees the handler's response first (status_code)
    - Context adds x-request-id to the response last
"""

from lambda_chain.middleware.base import NoResponse, WithResponse
from lambda_chain.middleware.common import (
    common,
    common_apigw_v1,
    common_s3,
    common_sns,
    common_sqs,
    common_with_response,
)
from lambda_chain.middleware.context import ContextMiddleware, ContextWithResponseMiddleware
from lambda_chain.middleware.metrics import MetricsMiddleware, MetricsWithResponseMiddleware

__all__ = [
    "NoResponse",
    "WithResponse",
    "ContextMiddleware",
    "ContextWithResponseMiddleware",
    "MetricsMiddleware",
    "MetricsWithResponseMiddleware",
    "common",
    "common_with_response",
    "common_s3",
    "common_sns",
    "common_sqs",
    "common_apigw_v1",
]
