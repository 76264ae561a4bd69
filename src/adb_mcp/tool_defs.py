from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type


def _wire(key: str) -> Dict[str, str]:
    return {"key": key}


@dataclass(frozen=True)
class NoArgs:
    pass


@dataclass(frozen=True)
class DeviceArgs:
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class ShellArgs:
    command: str = field(metadata=_wire("command"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class InstallApkArgs:
    path: str = field(metadata=_wire("path"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class UninstallPackageArgs:
    package_name: str = field(metadata=_wire("packageName"))
    keep_data: bool = field(default=False, metadata=_wire("keepData"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class StartActivityArgs:
    package_name: str = field(metadata=_wire("packageName"))
    activity_name: Optional[str] = field(default=None, metadata=_wire("activityName"))
    action: Optional[str] = field(default=None, metadata=_wire("action"))
    data_uri: Optional[str] = field(default=None, metadata=_wire("dataUri"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class DeepLinkArgs:
    package_name: str = field(metadata=_wire("packageName"))
    uri: str = field(metadata=_wire("uri"))
    activity_name: Optional[str] = field(default=None, metadata=_wire("activityName"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class PackageArgs:
    package_name: str = field(metadata=_wire("packageName"))
    device_id: Optional[str] = field(default=None, metadata=_wire("deviceId"))


@dataclass(frozen=True)
class GradleAssembleArgs:
    project_path: str = field(metadata=_wire("projectPath"))
    build_type: str = field(default="Debug", metadata=_wire("buildType"))


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    input_schema: dict[str, Any]
    args_type: Type[Any] = NoArgs


_DEVICE_ID = {"type": "string", "description": "Optional device serial"}
_PACKAGE_NAME = {"type": "string", "description": "Package name"}


def _object(properties: Dict[str, Any], required: Optional[List[str]] = None) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(required or [])}


TOOL_DEFINITIONS: list[ToolDefinition] = [
    ToolDefinition(
        name="list_devices",
        description="List connected Android devices",
        input_schema=_object({}),
    ),
    ToolDefinition(
        name="adb_shell",
        description="Execute an arbitrary adb shell command",
        input_schema=_object(
            {
                "command": {"type": "string", "description": "Shell command to execute on device"},
                "deviceId": _DEVICE_ID,
            },
            ["command"],
        ),
        args_type=ShellArgs,
    ),
    ToolDefinition(
        name="get_screenshot",
        description="Capture a screenshot from the device (base64-encoded PNG)",
        input_schema=_object({"deviceId": _DEVICE_ID}),
        args_type=DeviceArgs,
    ),
    ToolDefinition(
        name="install_apk",
        description="Install an APK on the device",
        input_schema=_object(
            {
                "path": {"type": "string", "description": "Path to APK on the host"},
                "deviceId": _DEVICE_ID,
            },
            ["path"],
        ),
        args_type=InstallApkArgs,
    ),
    ToolDefinition(
        name="uninstall_package",
        description="Uninstall an application",
        input_schema=_object(
            {
                "packageName": {"type": "string", "description": "Package name to uninstall"},
                "keepData": {"type": "boolean", "description": "Keep data and cache directories"},
                "deviceId": _DEVICE_ID,
            },
            ["packageName"],
        ),
        args_type=UninstallPackageArgs,
    ),
    ToolDefinition(
        name="start_activity",
        description="Launch an application or a specific Activity",
        input_schema=_object(
            {
                "packageName": _PACKAGE_NAME,
                "activityName": {"type": "string", "description": "Optional activity class name"},
                "action": {"type": "string", "description": "Optional intent action"},
                "dataUri": {"type": "string", "description": "Optional intent data URI"},
                "deviceId": _DEVICE_ID,
            },
            ["packageName"],
        ),
        args_type=StartActivityArgs,
    ),
    ToolDefinition(
        name="deep_link",
        description="Open application using a deep link URI",
        input_schema=_object(
            {
                "packageName": _PACKAGE_NAME,
                "uri": {"type": "string", "description": "Deep link URI"},
                "activityName": {"type": "string", "description": "Optional specific activity to handle the link"},
                "deviceId": _DEVICE_ID,
            },
            ["packageName", "uri"],
        ),
        args_type=DeepLinkArgs,
    ),
    ToolDefinition(
        name="force_stop",
        description="Force stop a running application",
        input_schema=_object({"packageName": _PACKAGE_NAME, "deviceId": _DEVICE_ID}, ["packageName"]),
        args_type=PackageArgs,
    ),
    ToolDefinition(
        name="clear_app_data",
        description="Clear application data",
        input_schema=_object({"packageName": _PACKAGE_NAME, "deviceId": _DEVICE_ID}, ["packageName"]),
        args_type=PackageArgs,
    ),
    ToolDefinition(
        name="current_activity",
        description="Retrieve the current foreground activity",
        input_schema=_object({"deviceId": _DEVICE_ID}),
        args_type=DeviceArgs,
    ),
    ToolDefinition(
        name="dump_hierarchy",
        description="Dump the UI hierarchy XML using uiautomator",
        input_schema=_object({"deviceId": _DEVICE_ID}),
        args_type=DeviceArgs,
    ),
    ToolDefinition(
        name="gradle_assemble",
        description="Compile Android project",
        input_schema=_object(
            {
                "projectPath": {"type": "string", "description": "Absolute path to project root"},
                "buildType": {
                    "type": "string",
                    "description": "Build type (e.g. Debug, Release). Defaults to Debug.",
                },
            },
            ["projectPath"],
        ),
        args_type=GradleAssembleArgs,
    ),
]
