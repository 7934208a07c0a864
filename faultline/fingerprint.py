"""
Grouping keys for events.

Changing the normalization, the field order or the delimiter re-partitions every
stored group, so all three are fixed.
"""
import enum
import hashlib
import re
from typing import Any, Iterable

DELIMITER = ":"
PLACEHOLDER = "*"

# Hex literals first so "0x1F" collapses whole instead of as "0" + "x1F".
# ASCII digits only; other Unicode digits are part of the message.
_VOLATILE_TOKENS = re.compile(r"0x[0-9a-f]+|[0-9]+", re.IGNORECASE)


def normalize_message(message: str) -> str:
    """
    Replace numbers and hex literals with a placeholder.

    "user 42 not found" and "user 7 not found" both become "user * not found".
    """
    return _VOLATILE_TOKENS.sub(PLACEHOLDER, message or "")


def plain_value(value: Any) -> Any:
    """Enum members hash and store as their value, e.g. LogLevel.ERROR -> "ERROR"."""
    if isinstance(value, enum.Enum):
        return value.value
    return value


def fingerprint(message: str, project_id: str, discriminators: Iterable[Any]) -> str:
    """
    Compute the SHA-256 grouping key of an event.

    Args:
        message: Raw event message
        project_id: Owning project
        discriminators: Kind-specific values (file and line for errors, level for logs)

    Returns:
        Hex-encoded digest
    """
    parts = [normalize_message(message), project_id or ""]
    parts.extend("" if value is None else str(plain_value(value)) for value in discriminators)
    data = DELIMITER.join(parts)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
