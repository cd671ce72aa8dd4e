"""
Lambda Chain - Context Middleware
=================================

What:  Attaches a request id (and, for API Gateway, request details) to the
       invocation context, and echoes the id back in the response headers.
How:   Forks the InvocationContext with logging fields, binds it as the
       current context for the rest of the chain, and after the handler
       returns sets `x-request-id` on API Gateway responses.
Who:   Usually the first middleware in the list (see `middleware.common`).

Fields added to every context:
    request_id          canonical id: API Gateway's id when present, else Lambda's
    lambda_request_id   the Lambda runtime's aws_request_id ("" outside Lambda)

Extra fields for APIGatewayProxyRequest events:
    amzn_request_id, request_method, request_domain, request_path

Events and responses of other types pass through untouched; a shape that is
not recognized is a normal branch, never an error.
"""

from typing import Any, Dict, Tuple

from lambda_chain import logctx
from lambda_chain.context import InvocationContext, lambda_context_from
from lambda_chain.events import APIGatewayProxyRequest, APIGatewayProxyResponse
from lambda_chain.middleware.base import (
    E,
    R,
    HandlerFunc,
    HandlerWithResponseFunc,
    NoResponse,
    WithResponse,
)

REQUEST_ID_HEADER = "x-request-id"


class ContextMiddleware(NoResponse[E]):
    """
    Context middleware for handlers that return no response.

    Adds at least `request_id` and `lambda_request_id` to the context.
    """

    def wrap(self, next_fn: HandlerFunc[E]) -> HandlerFunc[E]:
        async def wrapped(ctx: InvocationContext, event: E) -> None:
            _, ctx = context_from_event(ctx, event)
            with logctx.bind(ctx):
                return await next_fn(ctx, event)

        return wrapped


class ContextWithResponseMiddleware(WithResponse[E, R]):
    """
    Context middleware for handlers that return a response.

    For API Gateway v1 requests the context also carries method, domain and
    path, and the response gets the request id in the `x-request-id` header.
    """

    def wrap(self, next_fn: HandlerWithResponseFunc[E, R]) -> HandlerWithResponseFunc[E, R]:
        async def wrapped(ctx: InvocationContext, event: E) -> R:
            request_id, ctx = context_from_event(ctx, event)
            with logctx.bind(ctx):
                response = await next_fn(ctx, event)
            return transform_response(response, request_id)

        return wrapped


def context_from_event(ctx: InvocationContext, event: Any) -> Tuple[str, InvocationContext]:
    """
    Derive the canonical request id and the enriched context for `event`.

    Returns:
        (request_id, new_context). The input context is left untouched.
    """
    request_id, lambda_request_id = "", ""
    lambda_ctx = lambda_context_from(ctx)
    if lambda_ctx is not None:
        request_id = lambda_request_id = lambda_ctx.aws_request_id

    additional: Dict[str, Any] = {}
    if isinstance(event, APIGatewayProxyRequest):
        amzn_request_id = ""
        rc = event.request_context
        if rc.request_id:
            request_id = amzn_request_id = rc.request_id
        additional = {
            "amzn_request_id": amzn_request_id,
            "request_method": rc.http_method,
            "request_domain": rc.domain_name,
            "request_path": rc.path,
        }

    ctx = logctx.add(ctx, request_id=request_id, lambda_request_id=lambda_request_id)
    ctx = logctx.add(ctx, **additional)
    return request_id, ctx


def transform_response(response: Any, request_id: str) -> Any:
    """Set `x-request-id` on API Gateway responses that have a header map."""
    if isinstance(response, APIGatewayProxyResponse) and response.headers is not None:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response
