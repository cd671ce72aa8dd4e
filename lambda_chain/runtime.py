"""
Lambda Chain - Runtime API Adapter
==================================

What:  Runs a composed handler function against the AWS Lambda Runtime API.
How:   Long-polls for the next invocation, decodes the payload into the
       handler's event type, invokes the function, and posts the encoded
       response (or the error) back. Repeats until the process is stopped.
Who:   Started by `lambda_chain.main.start` / `start_with_response`.
When:  Once per execution environment, after the chain has been composed.

Runtime API endpoints used:
    GET  /2018-06-01/runtime/invocation/next
    POST /2018-06-01/runtime/invocation/{request_id}/response
    POST /2018-06-01/runtime/invocation/{request_id}/error
    POST /2018-06-01/runtime/init/error
    POST /2020-01-01/extension/register    (only when SIGTERM callbacks exist)
    GET  /2020-01-01/extension/event/next  (same; held open until shutdown)

Error handling:
    - Handler exceptions   → posted as invocation errors, loop continues
    - Undecodable payloads → posted as EventDecodeError, loop continues
    - Runtime API failures → RuntimeAPIError, loop ends (Lambda restarts us)

Shutdown:
    Lambda only delivers SIGTERM to runtimes that registered an extension.
    When SIGTERM callbacks are supplied, an internal extension subscribed to
    no events is registered before the first invocation is polled. Lambda
    only finishes initialization once every registered extension has asked
    for its next event, so that request is left pending in the background.
    On SIGTERM the callbacks run in order and the serve loop is cancelled.
"""

import asyncio
import logging
import os
import signal
import traceback
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

import httpx
from pydantic import TypeAdapter, ValidationError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from lambda_chain.config import Settings, settings
from lambda_chain.context import InvocationContext, LambdaContext
from lambda_chain.exceptions import EventDecodeError, RuntimeAPIError

logger = logging.getLogger(__name__)

RUNTIME_API_VERSION = "2018-06-01"
EXTENSION_API_VERSION = "2020-01-01"
SIGTERM_EXTENSION_NAME = "LambdaChainEnableSIGTERMExtension"

Decoder = Callable[[bytes], Any]
Encoder = Callable[[Any], bytes]


@dataclass(frozen=True)
class Invocation:
    """One event handed out by the Runtime API."""

    request_id: str
    payload: bytes
    lambda_context: LambdaContext


# ══════════════════════════════════════════════════════════════════════════
# Payload codecs
# ══════════════════════════════════════════════════════════════════════════

def event_decoder(event_type: Any = Any) -> Decoder:
    """
    Build a decoder turning a raw payload into `event_type`.

    `Any` yields plain JSON values (dict, list, str, ...). Pydantic models
    such as APIGatewayProxyRequest are validated from their AWS aliases.
    """
    adapter = TypeAdapter(event_type)

    def decode(payload: bytes) -> Any:
        try:
            return adapter.validate_json(payload)
        except ValidationError as e:
            raise EventDecodeError(
                message=f"Invocation payload is not a valid {_type_name(event_type)}",
                event_type=_type_name(event_type),
                context={"errors": e.error_count()},
            ) from e

    return decode


def response_encoder(response_type: Any = Any) -> Encoder:
    """Build an encoder that serializes handler responses using AWS aliases."""
    adapter = TypeAdapter(response_type)

    def encode(response: Any) -> bytes:
        return adapter.dump_json(response, by_alias=True)

    return encode


def encode_no_response(_: Any) -> bytes:
    """Encoder for handlers that return no response."""
    return b"null"


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


# ══════════════════════════════════════════════════════════════════════════
# Runtime API client
# ══════════════════════════════════════════════════════════════════════════

class RuntimeClient:
    """
    Thin async client for the Lambda Runtime API.

    Args:
        runtime_api: host:port from AWS_LAMBDA_RUNTIME_API.
        transport:   optional httpx transport (tests route this to a fake API).
        config:      settings supplying the function description for
                     LambdaContext and the retry policy of the
                     next-invocation long-poll.
    """

    def __init__(
        self,
        runtime_api: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        config: Settings = settings,
    ):
        self.config = config
        self._get_next = self._retrying(self._get_next_once)
        # No timeout: the next-invocation call blocks until an event arrives.
        self._client = httpx.AsyncClient(
            base_url=f"http://{runtime_api}",
            transport=transport,
            timeout=None,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def next_invocation(self) -> Invocation:
        """
        Block until the Runtime API hands out the next event.

        Raises:
            RuntimeAPIError: unexpected status, or transport errors that
                outlasted the retry policy.
        """
        try:
            resp = await self._get_next()
        except httpx.TransportError as e:
            raise RuntimeAPIError(
                message=f"Runtime API unreachable: {e}",
                context={"error_type": type(e).__name__},
            ) from e
        _check(resp, "next invocation")

        lambda_ctx = self._lambda_context(resp.headers)
        if lambda_ctx.trace_id:
            os.environ["_X_AMZN_TRACE_ID"] = lambda_ctx.trace_id
        else:
            os.environ.pop("_X_AMZN_TRACE_ID", None)
        return Invocation(
            request_id=lambda_ctx.aws_request_id,
            payload=resp.content,
            lambda_context=lambda_ctx,
        )

    def _retrying(self, fn):
        return retry(
            retry=retry_if_exception_type(httpx.TransportError),
            stop=stop_after_attempt(self.config.runtime_retry_max_attempts),
            wait=wait_exponential_jitter(
                initial=self.config.runtime_retry_min_wait,
                max=self.config.runtime_retry_max_wait,
                jitter=self.config.runtime_retry_min_wait,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )(fn)

    async def _get_next_once(self) -> httpx.Response:
        return await self._client.get(f"/{RUNTIME_API_VERSION}/runtime/invocation/next")

    async def post_response(self, request_id: str, payload: bytes) -> None:
        resp = await self._post(
            f"/{RUNTIME_API_VERSION}/runtime/invocation/{request_id}/response",
            content=payload,
            headers={"Content-Type": "application/json"},
        )
        _check(resp, "post response", request_id=request_id)

    async def post_error(self, request_id: str, exc: BaseException) -> None:
        resp = await self._post(
            f"/{RUNTIME_API_VERSION}/runtime/invocation/{request_id}/error",
            json=error_payload(exc),
            headers={"Lambda-Runtime-Function-Error-Type": "Unhandled"},
        )
        _check(resp, "post error", request_id=request_id)

    async def post_init_error(self, exc: BaseException) -> None:
        resp = await self._post(
            f"/{RUNTIME_API_VERSION}/runtime/init/error",
            json=error_payload(exc),
            headers={"Lambda-Runtime-Function-Error-Type": "Runtime.InitError"},
        )
        _check(resp, "post init error")

    async def register_sigterm_extension(self) -> Optional[str]:
        """
        Register an internal extension so Lambda sends SIGTERM on shutdown.

        Returns the extension identifier, or None (after logging) when
        registration fails; the function keeps serving, it just will not see
        SIGTERM.
        """
        try:
            resp = await self._client.post(
                f"/{EXTENSION_API_VERSION}/extension/register",
                json={"events": []},
                headers={"Lambda-Extension-Name": SIGTERM_EXTENSION_NAME},
            )
        except httpx.TransportError as e:
            logger.warning("SIGTERM extension registration failed: %s", e)
            return None
        if resp.status_code != 200:
            logger.warning("SIGTERM extension registration rejected: HTTP %d", resp.status_code)
            return None
        identifier = resp.headers.get("Lambda-Extension-Identifier")
        if not identifier:
            logger.warning("SIGTERM extension registration returned no identifier")
            return None
        return identifier

    async def next_extension_event(self, identifier: str) -> None:
        """
        Ask for the extension's next event.

        The extension subscribes to no events, so this request stays open
        until the environment shuts down. Failures are logged, not raised.
        """
        try:
            resp = await self._client.get(
                f"/{EXTENSION_API_VERSION}/extension/event/next",
                headers={"Lambda-Extension-Identifier": identifier},
            )
        except httpx.TransportError as e:
            logger.warning("SIGTERM extension event poll failed: %s", e)
            return
        if resp.status_code != 200:
            logger.warning("SIGTERM extension event poll rejected: HTTP %d", resp.status_code)

    async def _post(self, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.post(path, **kwargs)
        except httpx.TransportError as e:
            raise RuntimeAPIError(
                message=f"Runtime API unreachable: {e}",
                context={"path": path, "error_type": type(e).__name__},
            ) from e

    def _lambda_context(self, headers: httpx.Headers) -> LambdaContext:
        deadline = headers.get("Lambda-Runtime-Deadline-Ms", "0")
        return LambdaContext(
            aws_request_id=headers.get("Lambda-Runtime-Aws-Request-Id", ""),
            invoked_function_arn=headers.get("Lambda-Runtime-Invoked-Function-Arn", ""),
            deadline_ms=int(deadline) if deadline.isdigit() else 0,
            trace_id=headers.get("Lambda-Runtime-Trace-Id", ""),
            client_context=headers.get("Lambda-Runtime-Client-Context"),
            cognito_identity=headers.get("Lambda-Runtime-Cognito-Identity"),
            function_name=self.config.function_name,
            function_version=self.config.function_version,
            memory_limit_in_mb=self.config.memory_limit_in_mb,
            log_group_name=self.config.log_group_name,
            log_stream_name=self.config.log_stream_name,
        )


def error_payload(exc: BaseException) -> dict:
    """Runtime API error document for `exc`."""
    return {
        "errorMessage": str(exc),
        "errorType": type(exc).__name__,
        "stackTrace": traceback.format_tb(exc.__traceback__),
    }


def _check(resp: httpx.Response, action: str, request_id: Optional[str] = None) -> None:
    if resp.status_code >= 300:
        ctx = {"action": action}
        if request_id:
            ctx["request_id"] = request_id
        raise RuntimeAPIError(
            message=f"Runtime API {action} failed: HTTP {resp.status_code}",
            status_code=resp.status_code,
            context=ctx,
        )


# ══════════════════════════════════════════════════════════════════════════
# Serve loop
# ══════════════════════════════════════════════════════════════════════════

class Runtime:
    """Drives one composed function for the life of the execution environment."""

    def __init__(self, client: RuntimeClient):
        self.client = client
        self._terminating = False

    async def invoke(
        self,
        fn: Callable[[InvocationContext, Any], Awaitable[Any]],
        invocation: Invocation,
        decode: Decoder,
        encode: Encoder,
    ) -> None:
        """Run one invocation end to end and report its outcome."""
        request_id = invocation.request_id
        try:
            event = decode(invocation.payload)
        except EventDecodeError as e:
            logger.error("[%s] %s", request_id, e.message, extra={"request_id": request_id})
            await self.client.post_error(request_id, e)
            return

        ctx = InvocationContext(lambda_context=invocation.lambda_context)
        try:
            payload = encode(await fn(ctx, event))
        except Exception as e:
            logger.error(
                "[%s] Invocation failed: %s",
                request_id,
                str(e),
                exc_info=True,
                extra={"request_id": request_id},
            )
            await self.client.post_error(request_id, e)
            return

        await self.client.post_response(request_id, payload)

    async def serve(
        self,
        fn: Callable[[InvocationContext, Any], Awaitable[Any]],
        decode: Decoder,
        encode: Encoder,
        sigterm_callbacks: Sequence[Callable[[], Any]] = (),
    ) -> None:
        """
        Poll and invoke until SIGTERM or a Runtime API failure.

        Raises:
            RuntimeAPIError: the Runtime API failed; the process should exit.
        """
        loop = asyncio.get_running_loop()
        extension_task = None
        if sigterm_callbacks:
            identifier = await self.client.register_sigterm_extension()
            if identifier:
                extension_task = asyncio.ensure_future(self.client.next_extension_event(identifier))

        task = asyncio.ensure_future(self._poll(fn, decode, encode))
        if sigterm_callbacks:
            loop.add_signal_handler(signal.SIGTERM, self._on_sigterm, task, sigterm_callbacks)

        try:
            await task
        except asyncio.CancelledError:
            if not self._terminating:
                raise
            logger.info("Serve loop stopped after SIGTERM")
        finally:
            if sigterm_callbacks:
                loop.remove_signal_handler(signal.SIGTERM)
            if extension_task is not None:
                extension_task.cancel()
                await asyncio.gather(extension_task, return_exceptions=True)
            await self.client.aclose()

    async def _poll(self, fn, decode: Decoder, encode: Encoder) -> None:
        while True:
            invocation = await self.client.next_invocation()
            await self.invoke(fn, invocation, decode, encode)

    def _on_sigterm(self, task: "asyncio.Future[None]", callbacks: Sequence[Callable[[], Any]]) -> None:
        logger.info("SIGTERM received, running %d shutdown callback(s)", len(callbacks))
        self._terminating = True
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("Shutdown callback %r failed", cb)
        task.cancel()
