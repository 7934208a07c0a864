"""
Event kinds.

Errors and logs follow the same ingestion pattern and differ only in their
payload and in the fields that, together with the message and project, decide
which group an event belongs to. Stores, services and routers are written once
against EventKind.
"""
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Type
from pydantic import BaseModel
from faultline.exceptions import EventValidationError
from faultline.fingerprint import fingerprint, plain_value
from faultline.models import Error, ErrorGroup, Log, LogGroup, LogLevel
from faultline.schemas import ErrorGroupResponse, ErrorResponse, LogGroupResponse, LogResponse


class EventKind:
    """
    Description of one type of ingestable event.

    Args:
        name: Singular name used in messages ("error", "log")
        event_model: ORM model of the event table
        group_model: ORM model of the group table
        entity_schema: Response schema of an event
        group_schema: Response schema of a group
        discriminator_fields: Fields that partition groups besides message and project
        payload_fields: Fields copied from a create request onto the event
        side_channel_fields: JSON-in-text fields decoded at projection
        updatable_fields: Fields a partial update may change
        required_fields: Non-grouping fields an event cannot be stored without
        allowed_values: Closed value sets, e.g. log levels
    """

    def __init__(
        self,
        name: str,
        event_model: Type,
        group_model: Type,
        entity_schema: Type[BaseModel],
        group_schema: Type[BaseModel],
        discriminator_fields: Sequence[str],
        payload_fields: Sequence[str],
        side_channel_fields: Sequence[str] = (),
        updatable_fields: Sequence[str] = (),
        required_fields: Sequence[str] = (),
        allowed_values: Optional[Mapping[str, Sequence[str]]] = None,
    ):
        self.name = name
        self.event_model = event_model
        self.group_model = group_model
        self.entity_schema = entity_schema
        self.group_schema = group_schema
        self.discriminator_fields: Tuple[str, ...] = tuple(discriminator_fields)
        self.payload_fields: Tuple[str, ...] = tuple(payload_fields)
        self.side_channel_fields: Tuple[str, ...] = tuple(side_channel_fields)
        self.updatable_fields: Tuple[str, ...] = tuple(updatable_fields)
        self.required_fields: Tuple[str, ...] = tuple(required_fields)
        self.allowed_values: Dict[str, Tuple[str, ...]] = {
            field: tuple(values) for field, values in (allowed_values or {}).items()
        }

    def __repr__(self):
        return f"<EventKind({self.name})>"

    def has_field(self, field: str) -> bool:
        return field in self.payload_fields

    def snapshot(self, record: Any) -> Dict[str, Any]:
        """Grouping-relevant and payload values of a stored event."""
        values = {field: getattr(record, field) for field in self.payload_fields}
        values["project_id"] = record.project_id
        return values

    def coerce(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Unwrap enum members so stored and hashed values are plain strings."""
        return {field: plain_value(value) for field, value in values.items()}

    def discriminators(self, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {field: values.get(field) for field in self.discriminator_fields}

    def fingerprint(self, values: Mapping[str, Any]) -> str:
        return fingerprint(
            values.get("message"),
            values.get("project_id"),
            self.discriminators(values).values(),
        )

    def check(self, values: Mapping[str, Any]) -> None:
        """
        Reject events with empty grouping or required fields, or values outside their set.
        """
        if not values.get("project_id"):
            raise EventValidationError(f"{self.name}: project_id is required")
        if not values.get("message"):
            raise EventValidationError(f"{self.name}: message is required")
        for field, value in self.discriminators(values).items():
            if value is None or value == "" or value == 0:
                raise EventValidationError(f"{self.name}: {field} is required")
        for field in self.required_fields:
            value = values.get(field)
            if value is None or value == "" or value == 0:
                raise EventValidationError(f"{self.name}: {field} is required")
        for field, allowed in self.allowed_values.items():
            value = values.get(field)
            if value not in allowed:
                raise EventValidationError(
                    f"{self.name}: invalid {field} {value!r}, expected one of {', '.join(allowed)}"
                )


ERRORS = EventKind(
    name="error",
    event_model=Error,
    group_model=ErrorGroup,
    entity_schema=ErrorResponse,
    group_schema=ErrorGroupResponse,
    discriminator_fields=("file", "line"),
    payload_fields=(
        "message", "stacktrace", "file", "line", "time",
        "context", "ip", "url", "method", "headers", "query_params",
        "body_params", "cookies", "session", "files", "env",
    ),
    side_channel_fields=(
        "context", "headers", "query_params", "body_params",
        "cookies", "session", "files", "env",
    ),
    updatable_fields=("message", "stacktrace", "file", "line", "context"),
    required_fields=("stacktrace", "time"),
)

LOGS = EventKind(
    name="log",
    event_model=Log,
    group_model=LogGroup,
    entity_schema=LogResponse,
    group_schema=LogGroupResponse,
    discriminator_fields=("level",),
    payload_fields=("message", "level", "time", "context"),
    side_channel_fields=("context",),
    updatable_fields=("level", "message", "context"),
    required_fields=("time",),
    allowed_values={"level": [level.value for level in LogLevel]},
)
