"""
Exceptions raised by the ingestion core.

The HTTP layer maps them to status codes:
NotFoundError -> 404, EventValidationError -> 400, StorageError -> 500.
"""


class FaultlineError(Exception):
    """Base class for all errors raised by the core."""


class NotFoundError(FaultlineError):
    """Lookup, update or delete matched zero rows."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class EventValidationError(FaultlineError):
    """Input the core refuses to store (empty grouping fields, unknown level or status)."""


class StorageError(FaultlineError):
    """Failure talking to the relational store. The original exception is chained."""
