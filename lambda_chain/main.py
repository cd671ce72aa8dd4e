"""
Lambda Chain - Entry Point Bootstrap
====================================

What:  Starts a Lambda function: composes the handler with its middleware and
       hands the result to the Runtime API loop.
How:   start() for handlers without a response, start_with_response() for
       handlers that return one. Both configure logging, compose the chain
       (first middleware = outermost), and block serving invocations.
Who:   Called from the function's own `bootstrap` / `__main__` module.
When:  Once, at execution environment start.

Example:
    from lambda_chain.main import start_with_response
    from lambda_chain.events import APIGatewayProxyRequest, APIGatewayProxyResponse
    from lambda_chain.metrics import LoggingOutputter
    from lambda_chain.middleware.common import common_apigw_v1

    start_with_response(
        MyHandler(),
        common_apigw_v1(LoggingOutputter()),
        db_pool.close,
        event_type=APIGatewayProxyRequest,
        response_type=APIGatewayProxyResponse,
    )

Lifecycle:
    Startup:
    1. Setup structured logging
    2. Resolve AWS_LAMBDA_RUNTIME_API (fail fast outside Lambda)
    3. Compose the chain; failures are reported as init errors
    4. Serve invocations until SIGTERM or a Runtime API failure

    Shutdown (SIGTERM, only when callbacks are given):
    1. Run the callbacks in the order given
    2. Stop polling and close the Runtime API client
"""

import asyncio
import logging
import sys
from typing import Any, Callable, Sequence

from lambda_chain.chain import wrap_handler, wrap_handler_with_response
from lambda_chain.config import settings
from lambda_chain.exceptions import RuntimeAPIError
from lambda_chain.logctx import ContextFieldsFilter
from lambda_chain.runtime import (
    Decoder,
    Encoder,
    Runtime,
    RuntimeClient,
    encode_no_response,
    event_decoder,
    response_encoder,
)

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Structured Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the function process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s %(context_fields)s

    `context_fields` comes from ContextFieldsFilter and holds the fields the
    context middleware bound for the current invocation (request_id, ...).
    Lambda forwards stdout to CloudWatch Logs.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFieldsFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s %(context_fields)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Start
# ══════════════════════════════════════════════════════════════════════════

def start(
    handler: Any,
    middlewares: Sequence[Any],
    *sigterm_callbacks: Callable[[], Any],
    event_type: Any = Any,
) -> None:
    """
    Serve a handler whose events produce no response.

    Args:
        handler:           Handler instance or async function (ctx, event) -> None.
        middlewares:       NoResponse middleware, outermost first.
        sigterm_callbacks: run in order when Lambda shuts the environment down.
        event_type:        type the invocation payload is decoded into.
    """
    _run(
        lambda: wrap_handler(handler, *middlewares),
        event_decoder(event_type),
        encode_no_response,
        sigterm_callbacks,
    )


def start_with_response(
    handler: Any,
    middlewares: Sequence[Any],
    *sigterm_callbacks: Callable[[], Any],
    event_type: Any = Any,
    response_type: Any = Any,
) -> None:
    """
    Serve a handler that returns a response.

    Args:
        handler:           HandlerWithResponse instance or async function (ctx, event) -> R.
        middlewares:       WithResponse middleware, outermost first.
        sigterm_callbacks: run in order when Lambda shuts the environment down.
        event_type:        type the invocation payload is decoded into.
        response_type:     type used to serialize the handler's return value.
    """
    _run(
        lambda: wrap_handler_with_response(handler, *middlewares),
        event_decoder(event_type),
        response_encoder(response_type),
        sigterm_callbacks,
    )


def _run(
    build: Callable[[], Callable],
    decode: Decoder,
    encode: Encoder,
    sigterm_callbacks: Sequence[Callable[[], Any]],
) -> None:
    setup_logging()
    client = RuntimeClient(settings.require_runtime_api())

    try:
        fn = build()
    except Exception as e:
        logger.error("Handler initialization failed: %s", str(e), exc_info=True)
        asyncio.run(_report_init_error(client, e))
        raise

    logger.info(
        "Serving %s (version %s)",
        settings.function_name or "function",
        settings.function_version,
    )
    try:
        asyncio.run(Runtime(client).serve(fn, decode, encode, sigterm_callbacks))
    except RuntimeAPIError as e:
        logger.critical("Runtime API failure: %s | Context: %s", e.message, e.context)
        raise


async def _report_init_error(client: RuntimeClient, exc: BaseException) -> None:
    try:
        await client.post_init_error(exc)
    finally:
        await client.aclose()
