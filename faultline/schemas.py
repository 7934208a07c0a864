"""
Pydantic schemas for request/response validation.
"""
from typing import Optional, Any, List, Generic, TypeVar
from pydantic import BaseModel, Field
from faultline.models import GroupStatus, LogLevel

T = TypeVar("T")


class ErrorCreate(BaseModel):
    """Schema for an error reported by a client application."""
    time: int = Field(..., gt=0, description="Timestamp of the error in milliseconds (Unix epoch)")
    message: str = Field(..., min_length=1, description="Human-readable error message")
    stacktrace: str = Field(..., min_length=1, description="Full error stack trace")
    file: str = Field(..., min_length=1, description="Path to the file where the error occurred")
    line: int = Field(..., gt=0, description="Line number in the file where the error occurred")

    # Side-channel data: any JSON value, or a string that already holds encoded JSON
    context: Optional[Any] = None
    headers: Optional[Any] = None
    query_params: Optional[Any] = None
    body_params: Optional[Any] = None
    cookies: Optional[Any] = None
    session: Optional[Any] = None
    files: Optional[Any] = None
    env: Optional[Any] = None

    # Request information
    ip: Optional[str] = None
    url: Optional[str] = None
    method: Optional[str] = None


class ErrorUpdate(BaseModel):
    """Partial update of an error. Empty values leave the stored field unchanged."""
    message: Optional[str] = None
    stacktrace: Optional[str] = None
    file: Optional[str] = None
    line: Optional[int] = None
    context: Optional[Any] = None


class LogCreate(BaseModel):
    """Schema for a log record reported by a client application."""
    time: int = Field(..., gt=0, description="Timestamp of the log in milliseconds (Unix epoch)")
    level: LogLevel
    message: str = Field(..., min_length=1)
    context: Optional[Any] = None

    class Config:
        use_enum_values = True


class LogUpdate(BaseModel):
    level: Optional[LogLevel] = None
    message: Optional[str] = None
    context: Optional[Any] = None

    class Config:
        use_enum_values = True


class ErrorResponse(BaseModel):
    """Schema for an error with its side-channel fields decoded."""
    id: str
    project_id: str
    fingerprint: str
    message: str
    stacktrace: str
    file: str
    line: int
    context: Optional[Any] = None
    ip: Optional[str] = None
    url: Optional[str] = None
    method: Optional[str] = None
    headers: Optional[Any] = None
    query_params: Optional[Any] = None
    body_params: Optional[Any] = None
    cookies: Optional[Any] = None
    session: Optional[Any] = None
    files: Optional[Any] = None
    env: Optional[Any] = None
    time: int
    created_at: int
    updated_at: int


class LogResponse(BaseModel):
    id: str
    project_id: str
    fingerprint: str
    level: str
    message: str
    context: Optional[Any] = None
    time: int
    created_at: int
    updated_at: int


class ErrorGroupResponse(BaseModel):
    """Aggregate of all errors sharing a fingerprint."""
    id: str
    project_id: str
    message: str
    file: str
    line: int
    first_seen_at: int
    last_seen_at: int
    counter: int
    status: GroupStatus

    class Config:
        from_attributes = True


class LogGroupResponse(BaseModel):
    """Aggregate of all logs sharing a fingerprint."""
    id: str
    project_id: str
    message: str
    level: str
    first_seen_at: int
    last_seen_at: int
    counter: int
    status: GroupStatus

    class Config:
        from_attributes = True


class EntityList(BaseModel, Generic[T]):
    """Paginated list response."""
    count: int
    items: List[T]


class StatsResponse(BaseModel):
    """Event counts over trailing windows."""
    last24h: int = 0
    last7d: int = 0
    last30d: int = 0


class GroupStatusUpdate(BaseModel):
    status: GroupStatus
