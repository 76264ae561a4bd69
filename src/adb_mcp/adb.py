from __future__ import annotations

import base64
import os
import re
import shutil
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .errors import CommandError, CommandFailed, CommandLaunchError, CommandTimeout
from .logging import get_logger
from .process import Completed, LaunchFailed, ProcessOutcome, ProcessSpec, TimedOut, execute

logger = get_logger(__name__)

Executor = Callable[[ProcessSpec], ProcessOutcome]

LAUNCHER_CATEGORY = "android.intent.category.LAUNCHER"
VIEW_ACTION = "android.intent.action.VIEW"

_RESUMED_MARKERS = ("mResumedActivity", "topResumedActivity", "ResumedActivity")
_ACTIVITY_RECORD_RE = re.compile(r"ActivityRecord\{\S+\s+\S+\s+([\w.$]+/[\w.$]+)")
_COMPONENT_RE = re.compile(r"([\w.$]+/[\w.$]+)")


def find_adb_exe() -> str:
    """Best-effort adb lookup: SDK env vars, then PATH, then the bare name."""
    exe_name = "adb.exe" if os.name == "nt" else "adb"
    for env_name in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        sdk = os.environ.get(env_name, "").strip()
        if not sdk:
            continue
        candidate = Path(sdk) / "platform-tools" / exe_name
        if candidate.exists():
            return str(candidate.resolve())

    found = shutil.which("adb")
    if found:
        return found
    return "adb"


def classify(outcome: ProcessOutcome, *, program: str, executable: str) -> Completed:
    """Map an outcome to a successful ``Completed`` or raise the matching ``CommandError``."""
    if isinstance(outcome, TimedOut):
        raise CommandTimeout(f"{program} command timed out after {outcome.timeout:g} seconds")
    if isinstance(outcome, LaunchFailed):
        raise CommandLaunchError(
            f"{program} executable not found on PATH or not executable: {executable} ({outcome.reason})"
        )
    if outcome.exit_code != 0:
        stderr = outcome.stderr.decode("utf-8", errors="replace").strip()
        stdout = outcome.stdout.decode("utf-8", errors="replace").strip()
        raise CommandFailed(
            f"{program} command failed (exit {outcome.exit_code}): {stderr or stdout}",
            data={"exit_code": outcome.exit_code},
        )
    return outcome


def parse_devices(output: str) -> List[str]:
    """Serials of attached devices in the ``device`` state from ``adb devices`` output."""
    serials: List[str] = []
    for line in output.splitlines():
        line = line.strip()
        if not line or line.startswith("List of devices") or line.startswith("*"):
            continue
        parts = line.split()
        if len(parts) >= 2 and parts[1] == "device":
            serials.append(parts[0])
    return serials


def parse_current_activity(output: str) -> Optional[str]:
    """
    Pull ``package/activity`` out of ``dumpsys activity activities`` output.

    The format varies across Android releases, so the first resumed-activity
    line is returned as-is when no component can be matched in it.
    """
    for marker in _RESUMED_MARKERS:
        for line in output.splitlines():
            if marker not in line:
                continue
            match = _ACTIVITY_RECORD_RE.search(line) or _COMPONENT_RE.search(line)
            if match:
                return match.group(1)
            return line.strip()
    return None


def trim_hierarchy(xml: str) -> str:
    # uiautomator appends a status line after the document
    end = xml.rfind("</hierarchy>")
    if end != -1:
        return xml[: end + len("</hierarchy>")]
    return xml.rstrip()


class AdbClient:
    def __init__(
        self,
        executable: Optional[str] = None,
        timeout_sec: float = 30.0,
        executor: Executor = execute,
    ) -> None:
        self.executable = executable or find_adb_exe()
        self.timeout_sec = timeout_sec
        self._execute = executor

    # -------------------------
    # Device operations
    # -------------------------

    def list_devices(self) -> List[str]:
        return parse_devices(self._run_text(["devices", "-l"]))

    def execute_shell(self, command: str, device_id: Optional[str] = None) -> str:
        return self._run_text([*self._device_args(device_id), "shell", command]).rstrip()

    def capture_screenshot(self, device_id: Optional[str] = None) -> str:
        png = self._run([*self._device_args(device_id), "exec-out", "screencap", "-p"]).stdout
        if not png:
            raise CommandError("screencap returned no data")
        return base64.b64encode(png).decode("ascii")

    def install_apk(self, path: str, device_id: Optional[str] = None) -> None:
        apk = Path(path)
        if not apk.is_file():
            raise CommandError(f"APK not found at {path}")
        output = self._run_text([*self._device_args(device_id), "install", "-r", str(apk.resolve())])
        if "Failure" in output:
            raise CommandFailed(f"adb install failed: {output.strip()}")

    def uninstall_package(self, package_name: str, keep_data: bool = False, device_id: Optional[str] = None) -> None:
        args = [*self._device_args(device_id), "uninstall"]
        if keep_data:
            args.append("-k")
        args.append(package_name)
        output = self._run_text(args)
        if "Failure" in output:
            raise CommandFailed(f"adb uninstall failed: {output.strip()}")

    def start_activity(
        self,
        package_name: str,
        activity_name: Optional[str] = None,
        action: Optional[str] = None,
        data_uri: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> None:
        self._run_am_start(self.start_activity_args(package_name, activity_name, action, data_uri, device_id))

    def deep_link(
        self,
        package_name: str,
        uri: str,
        activity_name: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> None:
        self.start_activity(package_name, activity_name, VIEW_ACTION, uri, device_id)

    def force_stop(self, package_name: str, device_id: Optional[str] = None) -> None:
        self._run_text([*self._device_args(device_id), "shell", "am", "force-stop", package_name])

    def clear_app_data(self, package_name: str, device_id: Optional[str] = None) -> None:
        output = self._run_text([*self._device_args(device_id), "shell", "pm", "clear", package_name])
        if "Failed" in output:
            raise CommandFailed(f"pm clear failed: {output.strip()}")

    def current_activity(self, device_id: Optional[str] = None) -> str:
        output = self._run_text([*self._device_args(device_id), "shell", "dumpsys", "activity", "activities"])
        activity = parse_current_activity(output)
        if activity is None:
            raise CommandError("no resumed activity found in dumpsys output")
        return activity

    def dump_hierarchy(self, device_id: Optional[str] = None) -> str:
        output = self._run_text([*self._device_args(device_id), "exec-out", "uiautomator", "dump", "/dev/tty"])
        return trim_hierarchy(output)

    # -------------------------
    # Argument vectors
    # -------------------------

    @staticmethod
    def start_activity_args(
        package_name: str,
        activity_name: Optional[str] = None,
        action: Optional[str] = None,
        data_uri: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> List[str]:
        args = [*AdbClient._device_args(device_id), "shell"]
        if not (activity_name or action or data_uri):
            return [*args, "monkey", "-p", package_name, "-c", LAUNCHER_CATEGORY, "1"]

        args.extend(["am", "start", "-W"])
        if action:
            args.extend(["-a", action])
        if data_uri:
            args.extend(["-d", data_uri])
        if activity_name:
            component = activity_name if "/" in activity_name else f"{package_name}/{activity_name}"
            args.extend(["-n", component])
        else:
            args.append(package_name)
        return args

    @staticmethod
    def _device_args(device_id: Optional[str]) -> List[str]:
        if device_id is None or not device_id.strip():
            return []
        return ["-s", device_id]

    # -------------------------
    # Execution
    # -------------------------

    def _run(self, args: Sequence[str]) -> Completed:
        logger.debug("adb %s", " ".join(args))
        outcome = self._execute(ProcessSpec.of(self.executable, args, timeout=self.timeout_sec))
        return classify(outcome, program="adb", executable=self.executable)

    def _run_text(self, args: Sequence[str]) -> str:
        return self._run(args).stdout.decode("utf-8", errors="replace")

    def _run_am_start(self, args: Sequence[str]) -> None:
        output = self._run_text(args)
        for line in output.splitlines():
            stripped = line.strip()
            if stripped.startswith("Error") or "No activities found" in stripped:
                raise CommandFailed(f"activity launch failed: {output.strip()}")
