"""
Response envelope shared by every endpoint.

    {"success": bool, "message"?: str, "data"?: any, "errors"?: [...], "meta"?: {...}}

Absent members are dropped from the JSON rather than rendered as null.
"""

from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import Field, model_serializer

from core.schema_base import HTTPSchemaModel

T = TypeVar("T")


class ErrorDetail(HTTPSchemaModel):
    """One validation or failure detail."""

    field: Optional[str] = Field(None, description="Offending input field, if any")
    message: str
    stack: Optional[str] = Field(None, description="Traceback (non-production only)")

    @model_serializer(mode="wrap")
    def _drop_none(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class ApiResponse(HTTPSchemaModel, Generic[T]):
    """Envelope wrapping every response body."""

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    errors: Optional[List[ErrorDetail]] = None
    meta: Optional[Dict[str, Any]] = None

    @model_serializer(mode="wrap")
    def _drop_none(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> ApiResponse:
    return ApiResponse(success=True, message=message, data=data, meta=meta)


def error_body(
    message: str,
    errors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Serialized failure envelope for exception handlers."""
    envelope = ApiResponse(
        success=False,
        message=message,
        errors=[ErrorDetail(**error) for error in errors] if errors else None,
    )
    return envelope.model_dump(mode="json", by_alias=True)
