"""
Lambda Chain - AWS Event Models
===============================

What:  Pydantic models for the Lambda event and response payloads the
       middleware recognise.
How:   Attribute names are snake_case; aliases match the JSON Lambda sends
       and expects (camelCase for API Gateway/S3/SQS, PascalCase for SNS).
       `populate_by_name` lets code and tests build models with the Python
       names.
Who:   Decoded by the runtime adapter when a handler declares one of these as
       its event type; matched with isinstance() by the middleware.

Recognized shapes:
    APIGatewayProxyRequest   API Gateway REST (v1) proxy integration request
    APIGatewayProxyResponse  API Gateway REST (v1) proxy integration response
    S3Event, SNSEvent, SQSEvent
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel, to_pascal


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _PascalModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# API Gateway (REST API, proxy integration)
# ══════════════════════════════════════════════════════════════════════════

class APIGatewayProxyRequestContext(_CamelModel):
    """The `requestContext` block of an API Gateway proxy request."""

    account_id: str = ""
    resource_id: str = ""
    operation_name: str = ""
    stage: str = ""
    domain_name: str = ""
    domain_prefix: str = ""
    request_id: str = ""
    extended_request_id: str = ""
    protocol: str = ""
    identity: Dict[str, Any] = Field(default_factory=dict)
    resource_path: str = ""
    path: str = ""
    authorizer: Optional[Dict[str, Any]] = None
    http_method: str = ""
    request_time: str = ""
    request_time_epoch: int = 0
    api_id: str = ""


class APIGatewayProxyRequest(_CamelModel):
    """Incoming request from an API Gateway REST API proxy integration."""

    resource: str = ""
    path: str = ""
    http_method: str = ""
    headers: Optional[Dict[str, str]] = None
    multi_value_headers: Optional[Dict[str, List[str]]] = None
    query_string_parameters: Optional[Dict[str, str]] = None
    multi_value_query_string_parameters: Optional[Dict[str, List[str]]] = None
    path_parameters: Optional[Dict[str, str]] = None
    stage_variables: Optional[Dict[str, str]] = None
    request_context: APIGatewayProxyRequestContext = Field(
        default_factory=APIGatewayProxyRequestContext
    )
    body: Optional[str] = None
    is_base64_encoded: bool = False


class APIGatewayProxyResponse(_CamelModel):
    """
    Response returned to an API Gateway REST API proxy integration.

    `headers` may be None; the context middleware only injects
    `x-request-id` when a header dict is present.
    """

    status_code: int = 0
    headers: Optional[Dict[str, str]] = None
    multi_value_headers: Optional[Dict[str, List[str]]] = None
    body: str = ""
    is_base64_encoded: bool = False


# ══════════════════════════════════════════════════════════════════════════
# S3
# ══════════════════════════════════════════════════════════════════════════

class S3Bucket(_CamelModel):
    name: str = ""
    arn: str = ""


class S3Object(_CamelModel):
    key: str = ""
    size: int = 0
    e_tag: str = Field(default="", alias="eTag")
    version_id: str = ""
    sequencer: str = ""


class S3Entity(_CamelModel):
    s3_schema_version: str = ""
    configuration_id: str = ""
    bucket: S3Bucket = Field(default_factory=S3Bucket)
    object: S3Object = Field(default_factory=S3Object)


class S3EventRecord(_CamelModel):
    event_version: str = ""
    event_source: str = ""
    aws_region: str = ""
    event_time: str = ""
    event_name: str = ""
    s3: S3Entity = Field(default_factory=S3Entity)


class S3Event(_CamelModel):
    records: List[S3EventRecord] = Field(default_factory=list, alias="Records")


# ══════════════════════════════════════════════════════════════════════════
# SNS
# ══════════════════════════════════════════════════════════════════════════

class SNSEntity(_PascalModel):
    signature: str = ""
    message_id: str = ""
    type: str = ""
    topic_arn: str = ""
    message_attributes: Dict[str, Any] = Field(default_factory=dict)
    signature_version: str = ""
    timestamp: str = ""
    signing_cert_url: str = Field(default="", alias="SigningCertUrl")
    message: str = ""
    unsubscribe_url: str = Field(default="", alias="UnsubscribeUrl")
    subject: str = ""


class SNSEventRecord(_PascalModel):
    event_version: str = ""
    event_subscription_arn: str = ""
    event_source: str = ""
    sns: SNSEntity = Field(default_factory=SNSEntity)


class SNSEvent(_PascalModel):
    records: List[SNSEventRecord] = Field(default_factory=list)


# ══════════════════════════════════════════════════════════════════════════
# SQS
# ══════════════════════════════════════════════════════════════════════════

class SQSMessage(_CamelModel):
    message_id: str = ""
    receipt_handle: str = ""
    body: str = ""
    md5_of_body: str = ""
    md5_of_message_attributes: Optional[str] = None
    attributes: Dict[str, str] = Field(default_factory=dict)
    message_attributes: Dict[str, Any] = Field(default_factory=dict)
    event_source_arn: str = Field(default="", alias="eventSourceARN")
    event_source: str = ""
    aws_region: str = ""


class SQSEvent(_CamelModel):
    records: List[SQSMessage] = Field(default_factory=list, alias="Records")
