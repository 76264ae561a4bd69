import sys
import warnings
from typing import Any, Dict

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND, PARSE_ERROR

from .errors import ProtocolError, ToolError
from .logging import get_logger
from .protocol import PROTOCOL_VERSION, Request, make_error, make_result, parse_message, serialize_message, tool_result
from .tools import ToolRegistry

SERVER_INFO = {"name": "adb-mcp", "version": "0.1.0"}

INITIALIZE = "initialize"
LIST_TOOLS = ("list-tools", "tools/list")
CALL_TOOL = ("call-tool", "tools/call")

logger = get_logger(__name__)


class StdioServer:
    """
    Sequential line-delimited JSON-RPC loop.

    One request is handled completely (including any child process) before the
    next line is read, so responses leave in request order.
    """

    def __init__(self, tools: ToolRegistry, stdin=None, stdout=None, stderr=None) -> None:
        self.tools = tools
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._stderr = stderr or sys.stderr
        self._redirect_warnings()

    def _redirect_warnings(self) -> None:
        def _showwarning(message, category, filename, lineno, file=None, line=None) -> None:
            target = file or self._stderr
            try:
                text = warnings.formatwarning(message, category, filename, lineno, line)
                target.write(text)
                target.flush()
            except Exception:
                pass

        warnings.showwarning = _showwarning

    def run(self) -> None:
        logger.info("Serving %d tools on stdio", len(self.tools.names()))
        while True:
            line = self._stdin.readline()
            if line == "":
                break  # EOF
            if not line.strip():
                continue
            response = self.handle_line(line)
            try:
                serialized = serialize_message(response)
            except (TypeError, ValueError):
                logger.exception("Failed to serialize response")
                serialized = serialize_message(
                    make_error(response.get("id"), INTERNAL_ERROR, "Internal error: unserializable response")
                )
            try:
                self._stdout.write(serialized)
                self._stdout.flush()
            except (OSError, ValueError):
                logger.exception("Failed to write response")
                break
        logger.info("Input closed, shutting down")

    def handle_line(self, line: str) -> Dict[str, Any]:
        try:
            request = parse_message(line)
        except ProtocolError as exc:
            return make_error(None, PARSE_ERROR, str(exc))

        if request.params is not None and not isinstance(request.params, dict):
            return make_error(request.id, INVALID_PARAMS, "Invalid params: params must be an object")

        try:
            if request.method == INITIALIZE:
                return make_result(request.id, self._initialize())
            if request.method in LIST_TOOLS:
                return make_result(request.id, {"tools": self.tools.list_tools()})
            if request.method in CALL_TOOL:
                return self._call_tool(request)
            return make_error(request.id, METHOD_NOT_FOUND, f"Method not found: {request.method}")
        except ToolError as exc:
            return make_error(request.id, exc.rpc_code, str(exc), data=exc.data or None)
        except Exception as exc:
            logger.exception("Unhandled error while handling %s", request.method)
            return make_error(request.id, INTERNAL_ERROR, f"Internal error: {exc}")

    def _initialize(self) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "serverInfo": SERVER_INFO,
            "capabilities": {"tools": {}},
        }

    def _call_tool(self, request: Request) -> Dict[str, Any]:
        params = request.params
        if params is None:
            return make_error(request.id, INVALID_PARAMS, "Invalid params: missing params for call-tool")
        name = params.get("name")
        arguments = params.get("arguments")
        if not isinstance(name, str) or not name:
            return make_error(request.id, INVALID_PARAMS, "Invalid params: tool name must be a non-empty string")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return make_error(request.id, INVALID_PARAMS, "Invalid params: arguments must be an object")

        value = self.tools.call_tool(name, arguments)
        return make_result(request.id, tool_result(value))
