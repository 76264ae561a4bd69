import base64
import os

import pytest

from adb_mcp.adb import (
    AdbClient,
    find_adb_exe,
    parse_current_activity,
    parse_devices,
    trim_hierarchy,
)
from adb_mcp.errors import CommandError, CommandFailed, CommandLaunchError, CommandTimeout
from adb_mcp.process import Completed, LaunchFailed, TimedOut


def _ok(stdout=b"", stderr=b""):
    return Completed(stdout=stdout, stderr=stderr, exit_code=0)


def test_list_devices_filters_by_state(stub_executor):
    output = (
        b"List of devices attached\n"
        b"emulator-5554          device product:sdk_gphone64 model:Pixel transport_id:1\n"
        b"R58M123ABC             unauthorized usb:1-1 transport_id:2\n"
        b"192.168.1.20:5555      offline\n"
        b"\n"
    )
    executor = stub_executor(_ok(output))
    client = AdbClient(executable="adb", executor=executor)
    assert client.list_devices() == ["emulator-5554"]
    assert executor.argv == ["devices", "-l"]
    assert executor.specs[0].timeout == 30.0


def test_parse_devices_without_header():
    assert parse_devices("emulator-5554\tdevice\n") == ["emulator-5554"]


def test_device_serial_is_prepended(stub_executor):
    executor = stub_executor(_ok(b"hello\n\n"))
    client = AdbClient(executable="adb", executor=executor)
    assert client.execute_shell("echo hello", device_id="emulator-5554") == "hello"
    assert executor.argv == ["-s", "emulator-5554", "shell", "echo hello"]


def test_blank_device_id_is_ignored(stub_executor):
    executor = stub_executor(_ok())
    AdbClient(executable="adb", executor=executor).force_stop("com.example", device_id="  ")
    assert executor.argv == ["shell", "am", "force-stop", "com.example"]


def test_screenshot_is_base64_of_raw_bytes(stub_executor):
    png = b"\x89PNG\r\n\x1a\n\x00\x00\xff"
    executor = stub_executor(_ok(png))
    client = AdbClient(executable="adb", executor=executor)
    assert base64.b64decode(client.capture_screenshot()) == png
    assert executor.argv == ["exec-out", "screencap", "-p"]


def test_empty_screenshot_is_an_error(stub_executor):
    client = AdbClient(executable="adb", executor=stub_executor(_ok(b"")))
    with pytest.raises(CommandError):
        client.capture_screenshot()


def test_install_apk_requires_existing_file(stub_executor, tmp_path):
    executor = stub_executor()
    client = AdbClient(executable="adb", executor=executor)
    with pytest.raises(CommandError, match="APK not found"):
        client.install_apk(str(tmp_path / "missing.apk"))
    assert executor.specs == []


def test_install_apk_uses_absolute_path(stub_executor, tmp_path):
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")
    executor = stub_executor(_ok(b"Performing Streamed Install\nSuccess\n"))
    AdbClient(executable="adb", executor=executor).install_apk(str(apk), device_id="emu")
    assert executor.argv == ["-s", "emu", "install", "-r", str(apk.resolve())]


def test_install_failure_output_is_an_error(stub_executor, tmp_path):
    apk = tmp_path / "app.apk"
    apk.write_bytes(b"PK")
    executor = stub_executor(_ok(b"Failure [INSTALL_FAILED_VERSION_DOWNGRADE]\n"))
    with pytest.raises(CommandFailed, match="INSTALL_FAILED_VERSION_DOWNGRADE"):
        AdbClient(executable="adb", executor=executor).install_apk(str(apk))


def test_uninstall_keep_data(stub_executor):
    executor = stub_executor(_ok(b"Success\n"))
    AdbClient(executable="adb", executor=executor).uninstall_package("com.example", keep_data=True)
    assert executor.argv == ["uninstall", "-k", "com.example"]


def test_start_activity_without_component_uses_launcher():
    args = AdbClient.start_activity_args("com.example")
    assert args == ["shell", "monkey", "-p", "com.example", "-c", "android.intent.category.LAUNCHER", "1"]


def test_start_activity_with_relative_activity():
    args = AdbClient.start_activity_args("com.example", ".MainActivity", device_id="emu")
    assert args == ["-s", "emu", "shell", "am", "start", "-W", "-n", "com.example/.MainActivity"]


def test_deep_link_uses_view_action(stub_executor):
    executor = stub_executor(_ok(b"Starting: Intent { act=android.intent.action.VIEW }\nStatus: ok\n"))
    AdbClient(executable="adb", executor=executor).deep_link("com.example", "example://home")
    assert executor.argv == [
        "shell", "am", "start", "-W",
        "-a", "android.intent.action.VIEW",
        "-d", "example://home",
        "com.example",
    ]


def test_start_activity_error_output_is_an_error(stub_executor):
    executor = stub_executor(_ok(b"Starting: Intent { cmp=com.example/.Nope }\nError type 3\nError: Activity class does not exist.\n"))
    with pytest.raises(CommandFailed):
        AdbClient(executable="adb", executor=executor).start_activity("com.example", ".Nope")


def test_clear_app_data(stub_executor):
    executor = stub_executor(_ok(b"Success\n"))
    AdbClient(executable="adb", executor=executor).clear_app_data("com.example")
    assert executor.argv == ["shell", "pm", "clear", "com.example"]


def test_current_activity_parses_resumed_record(stub_executor):
    dumpsys = (
        b"ACTIVITY MANAGER ACTIVITIES (dumpsys activity activities)\n"
        b"  mResumedActivity: ActivityRecord{c0ffee u0 com.android.settings/.Settings t12}\n"
    )
    client = AdbClient(executable="adb", executor=stub_executor(_ok(dumpsys)))
    assert client.current_activity() == "com.android.settings/.Settings"


def test_current_activity_falls_back_to_raw_line():
    assert parse_current_activity("  topResumedActivity=none\n") == "topResumedActivity=none"


def test_current_activity_missing_is_an_error(stub_executor):
    client = AdbClient(executable="adb", executor=stub_executor(_ok(b"nothing here\n")))
    with pytest.raises(CommandError):
        client.current_activity()


def test_dump_hierarchy_strips_status_line(stub_executor):
    xml = b"<?xml version='1.0' ?><hierarchy rotation=\"0\"><node /></hierarchy>UI hierchary dumped to: /dev/tty\n"
    executor = stub_executor(_ok(xml))
    text = AdbClient(executable="adb", executor=executor).dump_hierarchy()
    assert text.endswith("</hierarchy>")
    assert executor.argv == ["exec-out", "uiautomator", "dump", "/dev/tty"]


def test_nonzero_exit_embeds_code_and_stderr(stub_executor):
    executor = stub_executor(Completed(stdout=b"", stderr=b"error: device 'x' not found\n", exit_code=1))
    with pytest.raises(CommandFailed) as excinfo:
        AdbClient(executable="adb", executor=executor).execute_shell("ls", device_id="x")
    assert "exit 1" in str(excinfo.value)
    assert "device 'x' not found" in str(excinfo.value)


def test_timeout_is_reported(stub_executor):
    client = AdbClient(executable="adb", timeout_sec=5, executor=stub_executor(TimedOut(timeout=5)))
    with pytest.raises(CommandTimeout, match="timed out after 5 seconds"):
        client.list_devices()


def test_launch_failure_is_reported(stub_executor):
    client = AdbClient(executable="/opt/missing/adb", executor=stub_executor(LaunchFailed("executable not found")))
    with pytest.raises(CommandLaunchError, match="/opt/missing/adb"):
        client.list_devices()


def test_find_adb_exe_prefers_sdk(monkeypatch, tmp_path):
    tools = tmp_path / "platform-tools"
    tools.mkdir()
    exe = tools / ("adb.exe" if os.name == "nt" else "adb")
    exe.write_text("")
    monkeypatch.setenv("ANDROID_HOME", str(tmp_path))
    assert find_adb_exe() == str(exe.resolve())


def test_trim_hierarchy_without_document():
    assert trim_hierarchy("ERROR: null root node\n") == "ERROR: null root node"
