"""Android device control and Gradle builds over a line-delimited stdio protocol."""

from .errors import ToolError
from .process import Completed, LaunchFailed, ProcessSpec, TimedOut, execute
from .protocol import PROTOCOL_VERSION, make_error, make_result, parse_message, serialize_message
from .server import StdioServer
from .tools import ToolRegistry, build_registry

__all__ = [
    "PROTOCOL_VERSION",
    "Completed",
    "LaunchFailed",
    "ProcessSpec",
    "StdioServer",
    "TimedOut",
    "ToolError",
    "ToolRegistry",
    "build_registry",
    "execute",
    "make_error",
    "make_result",
    "parse_message",
    "serialize_message",
]
