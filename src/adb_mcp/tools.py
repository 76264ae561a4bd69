from __future__ import annotations

from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError
from mcp.types import Tool

from .adb import AdbClient
from .errors import ArgumentError, ConfigurationError, UnknownTool
from .gradle import GradleClient
from .logging import get_logger
from .tool_defs import (
    TOOL_DEFINITIONS,
    DeepLinkArgs,
    DeviceArgs,
    GradleAssembleArgs,
    InstallApkArgs,
    NoArgs,
    PackageArgs,
    ShellArgs,
    StartActivityArgs,
    ToolDefinition,
    UninstallPackageArgs,
)

logger = get_logger(__name__)

Handler = Callable[[Any], Any]


@dataclass(frozen=True)
class RegisteredTool:
    definition: ToolDefinition
    handler: Handler
    validator: Draft7Validator


def _argument_error(error: ValidationError) -> ArgumentError:
    field_name = ".".join(str(p) for p in error.path) or "<root>"
    if error.validator == "required":
        instance = error.instance if isinstance(error.instance, dict) else {}
        missing = [name for name in error.validator_value if name not in instance]
        name = missing[0] if missing else field_name
        return ArgumentError(f"missing required argument: {name}", data={"field": name})
    if error.validator == "type":
        return ArgumentError(
            f"argument '{field_name}' must be of type {error.validator_value}",
            data={"field": field_name, "expected": error.validator_value},
        )
    return ArgumentError(f"argument '{field_name}': {error.message}", data={"field": field_name})


def decode_arguments(tool: RegisteredTool, arguments: Mapping[str, Any]) -> Any:
    """Validate raw arguments against the tool schema and build its argument record."""
    errors = sorted(
        tool.validator.iter_errors(arguments),
        key=lambda e: (e.validator != "required", [str(p) for p in e.path]),
    )
    if errors:
        raise _argument_error(errors[0])

    # Unknown keys are ignored; absent optional keys keep the record defaults.
    kwargs = {}
    for record_field in fields(tool.definition.args_type):
        key = record_field.metadata.get("key", record_field.name)
        if key in arguments:
            kwargs[record_field.name] = arguments[key]
    return tool.definition.args_type(**kwargs)


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}
        self._sealed = False

    def register(self, definition: ToolDefinition, handler: Handler) -> None:
        if self._sealed:
            raise ConfigurationError(f"Cannot register '{definition.name}': registry is sealed")
        if definition.name in self._tools:
            raise ConfigurationError(f"Duplicate tool name: {definition.name}")
        self._tools[definition.name] = RegisteredTool(
            definition=definition,
            handler=handler,
            validator=Draft7Validator(definition.input_schema),
        )

    def seal(self) -> "ToolRegistry":
        self._sealed = True
        self._tools = MappingProxyType(dict(self._tools))  # type: ignore[assignment]
        return self

    @property
    def sealed(self) -> bool:
        return self._sealed

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            Tool(
                name=tool.definition.name,
                description=tool.definition.description,
                inputSchema=tool.definition.input_schema,
            ).model_dump(by_alias=True, exclude_none=True)
            for tool in self._tools.values()
        ]

    def get(self, name: str) -> RegisteredTool:
        try:
            return self._tools[name]
        except KeyError as exc:
            raise UnknownTool(f"Tool not found: {name}") from exc

    def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        tool = self.get(name)
        args = decode_arguments(tool, arguments or {})
        logger.debug("Calling tool %s with %s", name, args)
        return tool.handler(args)


def default_handlers(adb: AdbClient, gradle: GradleClient) -> Dict[str, Handler]:
    def _list_devices(_: NoArgs) -> str:
        return "\n".join(adb.list_devices())

    def _adb_shell(args: ShellArgs) -> str:
        return adb.execute_shell(args.command, args.device_id)

    def _get_screenshot(args: DeviceArgs) -> str:
        return adb.capture_screenshot(args.device_id)

    def _install_apk(args: InstallApkArgs) -> str:
        adb.install_apk(args.path, args.device_id)
        return "ok"

    def _uninstall_package(args: UninstallPackageArgs) -> str:
        adb.uninstall_package(args.package_name, args.keep_data, args.device_id)
        return "ok"

    def _start_activity(args: StartActivityArgs) -> str:
        adb.start_activity(args.package_name, args.activity_name, args.action, args.data_uri, args.device_id)
        return "ok"

    def _deep_link(args: DeepLinkArgs) -> str:
        adb.deep_link(args.package_name, args.uri, args.activity_name, args.device_id)
        return "ok"

    def _force_stop(args: PackageArgs) -> str:
        adb.force_stop(args.package_name, args.device_id)
        return "ok"

    def _clear_app_data(args: PackageArgs) -> str:
        adb.clear_app_data(args.package_name, args.device_id)
        return "ok"

    def _current_activity(args: DeviceArgs) -> str:
        return adb.current_activity(args.device_id)

    def _dump_hierarchy(args: DeviceArgs) -> str:
        return adb.dump_hierarchy(args.device_id)

    def _gradle_assemble(args: GradleAssembleArgs) -> str:
        return gradle.assemble(args.project_path, args.build_type)

    return {
        "list_devices": _list_devices,
        "adb_shell": _adb_shell,
        "get_screenshot": _get_screenshot,
        "install_apk": _install_apk,
        "uninstall_package": _uninstall_package,
        "start_activity": _start_activity,
        "deep_link": _deep_link,
        "force_stop": _force_stop,
        "clear_app_data": _clear_app_data,
        "current_activity": _current_activity,
        "dump_hierarchy": _dump_hierarchy,
        "gradle_assemble": _gradle_assemble,
    }


def check_complete(definitions: Iterable[ToolDefinition], handlers: Mapping[str, Handler]) -> None:
    """Every definition needs a handler and every handler a definition."""
    names = [d.name for d in definitions]
    missing = [name for name in names if name not in handlers]
    orphans = [name for name in handlers if name not in names]
    if missing or orphans:
        raise ConfigurationError(f"Tool table mismatch: missing handlers {missing}, orphan handlers {orphans}")


def build_registry(
    adb: AdbClient,
    gradle: GradleClient,
    definitions: Iterable[ToolDefinition] = TOOL_DEFINITIONS,
    handlers: Optional[Mapping[str, Handler]] = None,
) -> ToolRegistry:
    definitions = list(definitions)
    handlers = default_handlers(adb, gradle) if handlers is None else handlers
    check_complete(definitions, handlers)

    registry = ToolRegistry()
    for definition in definitions:
        registry.register(definition, handlers[definition.name])
    return registry.seal()
