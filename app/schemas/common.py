"""Shared field types for the wire schemas."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _require_iso_string(value):
    # Reject epoch numbers; only ISO-8601 strings (or datetimes from Python callers)
    if isinstance(value, (str, datetime)):
        return value
    raise ValueError("must be an ISO-8601 datetime string")


def to_utc_naive(value: datetime) -> datetime:
    """Normalize to naive UTC. Naive input is taken to already be UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def serialize_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def split_tags(value):
    """Split a comma-separated tag string into a clean list."""
    if value is None or isinstance(value, list):
        return value
    return [tag.strip() for tag in str(value).split(",") if tag.strip()]


def join_tags(value: str | None) -> str | None:
    """Normalize "a, b,,c" into "a,b,c" for storage."""
    tags = split_tags(value)
    return ",".join(tags) if tags else None


TagList = Annotated[list[str], BeforeValidator(split_tags)]

# Inbound timestamps: ISO-8601 in, naive UTC out
IsoDatetime = Annotated[datetime, BeforeValidator(_require_iso_string), AfterValidator(to_utc_naive)]

# Outbound timestamps: stored naive UTC, rendered with a Z suffix
UtcDatetime = Annotated[datetime, PlainSerializer(serialize_utc, return_type=str)]


# Shared by every camelCase wire model
CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    from_attributes=True,
)
