"""
Common middleware stacks: context first, then metrics.

The context middleware is outermost so that both metrics records are logged
with the request id already bound.
"""

from typing import List

from lambda_chain.events import (
    APIGatewayProxyRequest,
    APIGatewayProxyResponse,
    S3Event,
    SNSEvent,
    SQSEvent,
)
from lambda_chain.metrics import Outputter
from lambda_chain.middleware.base import E, R, NoResponse, WithResponse
from lambda_chain.middleware.context import ContextMiddleware, ContextWithResponseMiddleware
from lambda_chain.middleware.metrics import MetricsMiddleware, MetricsWithResponseMiddleware


def common(outputter: Outputter) -> List[NoResponse[E]]:
    """Common middleware for handlers that return no response."""
    return [
        ContextMiddleware(),
        MetricsMiddleware(outputter),
    ]


def common_with_response(outputter: Outputter) -> List[WithResponse[E, R]]:
    """Common middleware for handlers that return a response."""
    return [
        ContextWithResponseMiddleware(),
        MetricsWithResponseMiddleware(outputter),
    ]


def common_s3(outputter: Outputter) -> List[NoResponse[S3Event]]:
    return common(outputter)


def common_sns(outputter: Outputter) -> List[NoResponse[SNSEvent]]:
    return common(outputter)


def common_sqs(outputter: Outputter) -> List[NoResponse[SQSEvent]]:
    return common(outputter)


def common_apigw_v1(
    outputter: Outputter,
) -> List[WithResponse[APIGatewayProxyRequest, APIGatewayProxyResponse]]:
    """Common middleware for API Gateway REST (v1) proxy handlers."""
    return common_with_response(outputter)
