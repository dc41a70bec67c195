"""
Base schema model for API payloads.

camelCase on the wire for the web frontend, snake_case in Python, and
naive-UTC datetimes rendered with a 'Z' suffix.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer


def to_camel(string: str) -> str:
    """
    Convert snake_case to camelCase.

    Example:
        >>> to_camel("job_address")
        'jobAddress'
    """
    parts = string.split("_")
    return parts[0] + "".join(word.capitalize() for word in parts[1:])


def serialize_datetime(dt: datetime | None) -> str | None:
    """
    Serialize a datetime as ISO 8601 with a 'Z' suffix.

    Naive values are assumed to be UTC already; aware values are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.isoformat() + "Z"


class HTTPSchemaModel(BaseModel):
    """
    Base model for all HTTP API schemas.

    Accepts both snake_case and camelCase input, reads ORM objects
    (from_attributes) and writes camelCase keys.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap")
    def serialize_any_datetime(self, value: Any, handler: Any) -> Any:
        if isinstance(value, datetime):
            return serialize_datetime(value)
        return handler(value)
