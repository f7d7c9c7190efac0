"""
MCP protocol utilities.

Typed notification payloads and server log forwarding.
"""

from mcplite.utilities.types import LogLevel, LogMessage, ProgressInfo, ResourceUpdate
from mcplite.utilities.server_logging import MCP_TO_PYTHON_LEVEL, forward_to_python

__all__ = [
    "LogLevel",
    "LogMessage",
    "ProgressInfo",
    "ResourceUpdate",
    "MCP_TO_PYTHON_LEVEL",
    "forward_to_python",
]
