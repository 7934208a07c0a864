"""
Mapping of stored rows to API entities.

Side-channel fields are stored as JSON text. Rows written by older clients may
hold plain text instead; those are returned wrapped as {field_name: raw_text}
rather than failing the whole response.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from pydantic import BaseModel
from faultline.kinds import EventKind


@dataclass(frozen=True)
class Parsed:
    """Side-channel text that decoded as JSON."""
    value: Any


@dataclass(frozen=True)
class Raw:
    """Side-channel text that is not valid JSON."""
    text: str


OpaqueJSON = Union[Parsed, Raw]


def encode_side_channel(value: Any) -> Optional[str]:
    """
    Serialize a side-channel value for storage.

    Strings are kept verbatim since clients send already-encoded JSON text.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


def decode_side_channel(text: Optional[str]) -> Optional[OpaqueJSON]:
    if text is None or text == "":
        return None
    try:
        return Parsed(json.loads(text))
    except (ValueError, TypeError):
        return Raw(text)


def project_side_channel(field: str, text: Optional[str]) -> Any:
    decoded = decode_side_channel(text)
    if decoded is None:
        return None
    if isinstance(decoded, Raw):
        return {field: decoded.text}
    return decoded.value


def to_entity(kind: EventKind, record: Any) -> BaseModel:
    """
    Build the response entity of an event row.
    """
    data: Dict[str, Any] = {
        "id": record.id,
        "project_id": record.project_id,
        "fingerprint": record.fingerprint,
        "time": record.time,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
    for field in kind.payload_fields:
        value = getattr(record, field)
        if field in kind.side_channel_fields:
            value = project_side_channel(field, value)
        data[field] = value
    return kind.entity_schema.model_validate(data)


def to_group_entity(kind: EventKind, group: Any) -> BaseModel:
    return kind.group_schema.model_validate(group)
