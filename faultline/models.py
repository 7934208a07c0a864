"""
SQLAlchemy models for the database.

Events (errors, logs) are stored one row per occurrence. Groups aggregate every
event sharing a fingerprint; the group's primary key IS the fingerprint.
All timestamps are epoch milliseconds.
"""
import enum
from sqlalchemy import Column, Integer, BigInteger, String, Text
from faultline.database import Base


class GroupStatus(str, enum.Enum):
    """Triage state of a group."""
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    IGNORED = "ignored"


class LogLevel(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"


class EventMixin:
    """Columns shared by every event table."""
    id = Column(String(36), primary_key=True)
    project_id = Column(String, nullable=False, index=True)
    fingerprint = Column(String(64), nullable=False, index=True)
    message = Column(Text, nullable=False)
    context = Column(Text, nullable=True)  # JSON-encoded
    time = Column(BigInteger, nullable=False, index=True)  # client-reported
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)


class GroupMixin:
    """Columns shared by every group table."""
    id = Column(String(64), primary_key=True)  # fingerprint
    project_id = Column(String, nullable=False, index=True)
    message = Column(Text, nullable=False)
    first_seen_at = Column(BigInteger, nullable=False)
    last_seen_at = Column(BigInteger, nullable=False, index=True)
    counter = Column(Integer, nullable=False, default=1)
    status = Column(String, nullable=False, default=GroupStatus.UNRESOLVED.value)


class Error(EventMixin, Base):
    """
    A single reported error with its request side-channel data.
    """
    __tablename__ = "errors"

    stacktrace = Column(Text, nullable=False)
    file = Column(String, nullable=False)
    line = Column(Integer, nullable=False)

    # Request information
    ip = Column(String, nullable=True)
    url = Column(Text, nullable=True)
    method = Column(String, nullable=True)

    # JSON-encoded side-channel fields
    headers = Column(Text, nullable=True)
    query_params = Column(Text, nullable=True)
    body_params = Column(Text, nullable=True)
    cookies = Column(Text, nullable=True)
    session = Column(Text, nullable=True)
    files = Column(Text, nullable=True)
    env = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Error(id={self.id}, project_id={self.project_id}, fingerprint={self.fingerprint})>"


class Log(EventMixin, Base):
    """
    A single log record.
    """
    __tablename__ = "logs"

    level = Column(String(8), nullable=False, index=True)

    def __repr__(self):
        return f"<Log(id={self.id}, project_id={self.project_id}, level={self.level})>"


class ErrorGroup(GroupMixin, Base):
    __tablename__ = "error_groups"

    file = Column(String, nullable=False)
    line = Column(Integer, nullable=False)

    def __repr__(self):
        return f"<ErrorGroup(id={self.id}, counter={self.counter}, status={self.status})>"


class LogGroup(GroupMixin, Base):
    __tablename__ = "log_groups"

    level = Column(String(8), nullable=False, index=True)

    def __repr__(self):
        return f"<LogGroup(id={self.id}, counter={self.counter}, status={self.status})>"
