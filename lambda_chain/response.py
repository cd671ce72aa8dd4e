"""
Lambda Chain - API Gateway Response Helpers
===========================================

What:  Build APIGatewayProxyResponse envelopes for plain text, JSON and errors.
How:   Bodies are converted with pydantic_core.to_jsonable_python, which
       handles dicts, lists, dataclasses and pydantic models, then written as
       compact JSON (`{"num":456,"str":"test-789"}`). NaN and Infinity are
       rejected since they have no JSON representation.

Serialization failures:
    new_json() does not raise when the body cannot be serialized. The
    response keeps an empty body and no Content-Type header, and a warning
    is logged.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError, to_jsonable_python

from lambda_chain.events import APIGatewayProxyResponse

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class ErrorBody(BaseModel):
    """JSON shape of error responses: {"code": <int>, "message": <str>}."""

    code: int
    message: str


def new(status: int, body: str) -> APIGatewayProxyResponse:
    """Plain response with `body` as-is and an empty header map."""
    return APIGatewayProxyResponse(status_code=status, headers={}, body=body)


def new_json(status: int, body: Any) -> APIGatewayProxyResponse:
    """
    JSON response with `Content-Type: application/json`.

    Args:
        status: HTTP status code.
        body:   Any value pydantic can serialize. None produces an empty,
                non-JSON response.
    """
    res = APIGatewayProxyResponse(status_code=status, headers={})
    if body is not None:
        try:
            res.body = json.dumps(
                to_jsonable_python(body),
                allow_nan=False,
                ensure_ascii=False,
                separators=(",", ":"),
            )
            res.headers["Content-Type"] = JSON_CONTENT_TYPE
        except (PydanticSerializationError, ValueError) as e:
            logger.warning("Response body of type %s is not JSON serializable: %s", type(body).__name__, e)
    return res


def new_error(status: int, message: str) -> APIGatewayProxyResponse:
    """JSON error response whose body mirrors the status as `code`."""
    return new_json(status, ErrorBody(code=status, message=message))
