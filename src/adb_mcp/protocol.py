import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from mcp.types import CallToolResult, TextContent

from .errors import ProtocolError

PROTOCOL_VERSION = "2024-11-05"
JSONRPC_VERSION = "2.0"


@dataclass(frozen=True)
class Request:
    method: str
    id: Any = None
    params: Any = None


def parse_message(line: str) -> Request:
    """Parse a single NDJSON line into a request envelope."""
    try:
        message = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Parse error: {exc.msg}") from exc
    if not isinstance(message, dict):
        raise ProtocolError("Parse error: message must be a JSON object")
    version = message.get("jsonrpc", JSONRPC_VERSION)
    if version != JSONRPC_VERSION:
        raise ProtocolError("Parse error: unsupported jsonrpc version")
    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise ProtocolError("Parse error: missing or invalid method")
    # a missing id is answered with a null id
    return Request(method=method, id=message.get("id"), params=message.get("params"))


def serialize_message(message: Dict[str, Any]) -> str:
    """Serialize a JSON-RPC message as a compact JSON line."""
    return json.dumps(message, separators=(",", ":")) + "\n"


def make_result(request_id: Any, result: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def make_error(
    request_id: Any, code: int, message: str, data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def tool_result(value: Any) -> Dict[str, Any]:
    """Wrap a handler return value as a list with one text content item."""
    text = value if isinstance(value, str) else json.dumps(value, sort_keys=True)
    result = CallToolResult(content=[TextContent(type="text", text=text)])
    return result.model_dump(by_alias=True, exclude_none=True)
