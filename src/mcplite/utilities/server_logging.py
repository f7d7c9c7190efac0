"""Forwarding of MCP server log messages into Python logging."""

from __future__ import annotations

import logging as python_logging

from mcplite.utilities.types import LogLevel, LogMessage

SERVER_LOGGER_PREFIX = "mcplite.server"

# Mapping from MCP log levels to Python logging levels
MCP_TO_PYTHON_LEVEL: dict[LogLevel, int] = {
    LogLevel.DEBUG: python_logging.DEBUG,
    LogLevel.INFO: python_logging.INFO,
    LogLevel.NOTICE: python_logging.INFO,  # Python has no NOTICE
    LogLevel.WARNING: python_logging.WARNING,
    LogLevel.ERROR: python_logging.ERROR,
    LogLevel.CRITICAL: python_logging.CRITICAL,
    LogLevel.ALERT: python_logging.CRITICAL,
    LogLevel.EMERGENCY: python_logging.CRITICAL,
}


def server_logger_name(message: LogMessage, prefix: str = SERVER_LOGGER_PREFIX) -> str:
    """Python logger name used for a server log message."""
    if message.logger:
        return f"{prefix}.{message.logger}"
    return prefix


def forward_to_python(message: LogMessage, prefix: str = SERVER_LOGGER_PREFIX) -> None:
    """
    Re-emit a server log message through Python logging.

    Args:
        message: The log message received from the server.
        prefix: Logger name prefix; the server's logger name is appended.
    """
    py_level = MCP_TO_PYTHON_LEVEL.get(message.level, python_logging.INFO)

    if isinstance(message.data, str):
        log_msg = message.data
    elif message.data is not None:
        log_msg = f"{message.data}"
    else:
        log_msg = "(no message)"

    python_logging.getLogger(server_logger_name(message, prefix)).log(py_level, log_msg)
