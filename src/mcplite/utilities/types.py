"""Typed payloads for server notifications."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class LogLevel(Enum):
    """
    MCP log levels following RFC 5424 severity levels.

    Ordered from least to most severe.
    """

    DEBUG = "debug"
    INFO = "info"
    NOTICE = "notice"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"
    ALERT = "alert"
    EMERGENCY = "emergency"

    @classmethod
    def from_string(cls, value: str) -> "LogLevel":
        """Parse log level from string value."""
        try:
            return cls(value.lower())
        except (ValueError, AttributeError):
            raise ValueError(f"Invalid log level: {value}")


@dataclass
class ProgressInfo:
    """
    Progress notification data from server.

    Sent via notifications/progress during long-running operations that
    were started with a progress token.
    """

    progress_token: str | int | None
    """Token identifying the operation (None if the server omitted it)."""

    progress: float
    """Current progress value."""

    total: float | None = None
    """Total value if known."""

    message: str | None = None
    """Optional progress message."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressInfo":
        """Parse from notification params."""
        return cls(
            progress_token=data.get("progressToken"),
            progress=float(data["progress"]),
            total=float(data["total"]) if data.get("total") is not None else None,
            message=data.get("message"),
        )

    @property
    def percentage(self) -> float | None:
        """Calculate percentage complete if total is known."""
        if self.total is not None and self.total > 0:
            return (self.progress / self.total) * 100
        return None

    def __str__(self) -> str:
        total = self.total if self.total is not None else "?"
        return f"{self.progress}/{total} - {self.message or ''}"


@dataclass
class LogMessage:
    """
    Server log message notification data.

    Sent via notifications/message from server to client.
    """

    level: LogLevel
    """Severity level of the message."""

    logger: str | None = None
    """Logger name/component that generated the message."""

    data: Any = None
    """Log message data (typically string or dict)."""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LogMessage":
        """Parse from notification params."""
        return cls(
            level=LogLevel.from_string(data["level"]),
            logger=data.get("logger"),
            data=data.get("data"),
        )


@dataclass
class ResourceUpdate:
    """A notifications/resources/updated payload."""

    uri: str
    params: dict[str, Any]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResourceUpdate":
        """Parse from notification params."""
        return cls(uri=data["uri"], params=data)
