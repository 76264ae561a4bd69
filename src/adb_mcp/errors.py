from __future__ import annotations

from typing import Any, Dict, Optional

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND


class AdbMcpError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(AdbMcpError):
    pass


class ProtocolError(AdbMcpError):
    """Raised when a line cannot be decoded into a request envelope."""


class ToolError(AdbMcpError):
    """Error raised while calling a tool, carrying its JSON-RPC error code."""

    rpc_code = INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.rpc_code = code
        self.data = data or {}


class UnknownTool(ToolError):
    rpc_code = METHOD_NOT_FOUND


class ArgumentError(ToolError):
    rpc_code = INVALID_PARAMS


class CommandError(ToolError):
    rpc_code = INTERNAL_ERROR


class CommandFailed(CommandError):
    pass


class CommandTimeout(CommandError):
    pass


class CommandLaunchError(CommandError):
    pass
