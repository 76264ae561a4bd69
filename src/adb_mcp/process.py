"""
Subprocess execution for adb and Gradle commands.

``execute`` launches one program, drains stdout and stderr on two helper
threads while it runs, and returns exactly one outcome:

- ``Completed``: the process exited before the deadline; both channels were
  read to EOF, so the captured bytes are complete.
- ``TimedOut``: the deadline elapsed; the process (group) was killed and any
  partial output was discarded.
- ``LaunchFailed``: the executable could not be located or spawned.

Exit codes are not interpreted here.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import sys
import threading
import time
from dataclasses import dataclass
from typing import IO, Optional, Sequence, Tuple, Union

from .logging import get_logger

logger = get_logger(__name__)

# Time allowed for drains to flush after a kill before they are abandoned.
DRAIN_GRACE_SEC = 0.5
_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ProcessSpec:
    executable: str
    args: Tuple[str, ...] = ()
    cwd: Optional[str] = None
    timeout: float = 30.0

    @classmethod
    def of(cls, executable: str, args: Sequence[str], *, cwd: Optional[str] = None, timeout: float = 30.0) -> "ProcessSpec":
        return cls(executable=executable, args=tuple(args), cwd=cwd, timeout=float(timeout))


@dataclass(frozen=True)
class Completed:
    stdout: bytes
    stderr: bytes
    exit_code: int


@dataclass(frozen=True)
class TimedOut:
    timeout: float


@dataclass(frozen=True)
class LaunchFailed:
    reason: str


ProcessOutcome = Union[Completed, TimedOut, LaunchFailed]


def locate_executable(executable: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Resolve ``executable`` to a runnable path.

    Returns ``(path, None)`` on success or ``(None, reason)`` when the program
    is missing or not executable.
    """
    if not executable:
        return None, "no executable given"

    has_sep = os.sep in executable or (os.altsep is not None and os.altsep in executable)
    if not has_sep:
        found = shutil.which(executable)
        if found is None:
            return None, f"executable not found on PATH: {executable}"
        return found, None

    if not os.path.exists(executable):
        return None, f"executable not found: {executable}"
    if not os.path.isfile(executable):
        return None, f"not a file: {executable}"
    if not os.access(executable, os.X_OK):
        return None, f"not executable: {executable}"
    return executable, None


class _Drain:
    """Reads one pipe to EOF into memory on a daemon thread."""

    def __init__(self, stream: IO[bytes], name: str) -> None:
        self._stream = stream
        self._buffer = bytearray()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        try:
            while True:
                chunk = self._stream.read1(_CHUNK_SIZE)
                if not chunk:
                    break
                self._buffer.extend(chunk)
        except (OSError, ValueError):
            # pipe torn down after a kill
            pass

    def join(self, timeout: Optional[float] = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def close(self) -> None:
        # Only safe once the reader thread is gone: close() waits on the buffer lock.
        if self._thread.is_alive():
            return
        try:
            self._stream.close()
        except OSError:
            pass

    def data(self) -> bytes:
        return bytes(self._buffer)


def _kill(proc: subprocess.Popen) -> None:
    if sys.platform != "win32":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except (ProcessLookupError, PermissionError):
            pass
    try:
        proc.kill()
    except ProcessLookupError:
        pass


def _abandon(proc: subprocess.Popen, drains: Tuple[_Drain, ...], grace: float) -> None:
    _kill(proc)
    proc.wait()
    for drain in drains:
        drain.join(grace)
        drain.close()


def execute(spec: ProcessSpec, *, drain_grace: float = DRAIN_GRACE_SEC) -> ProcessOutcome:
    path, reason = locate_executable(spec.executable)
    if path is None:
        logger.warning("Cannot launch %s: %s", spec.executable, reason)
        return LaunchFailed(reason or "unknown launch failure")

    argv = [path, *spec.args]
    logger.debug("Launching %s (cwd=%s, timeout=%ss)", argv, spec.cwd, spec.timeout)
    try:
        proc = subprocess.Popen(
            argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=spec.cwd,
            start_new_session=sys.platform != "win32",
        )
    except OSError as exc:
        logger.warning("Failed to launch %s: %s", path, exc)
        return LaunchFailed(f"failed to start {path}: {exc}")

    deadline = time.monotonic() + spec.timeout
    stdout_drain = _Drain(proc.stdout, "drain-stdout")
    stderr_drain = _Drain(proc.stderr, "drain-stderr")
    drains = (stdout_drain, stderr_drain)
    for drain in drains:
        drain.start()

    try:
        exit_code = proc.wait(timeout=spec.timeout)
    except subprocess.TimeoutExpired:
        logger.warning("Process %s exceeded %ss, killing", path, spec.timeout)
        _abandon(proc, drains, drain_grace)
        return TimedOut(timeout=spec.timeout)

    # A descendant that inherited the pipes can keep them open past our child's
    # exit; the overall deadline still applies to reaching EOF.
    for drain in drains:
        if not drain.join(max(deadline - time.monotonic(), drain_grace)):
            logger.warning("Output of %s still open at the %ss deadline, killing", path, spec.timeout)
            _abandon(proc, drains, drain_grace)
            return TimedOut(timeout=spec.timeout)

    for drain in drains:
        drain.close()
    return Completed(stdout=stdout_drain.data(), stderr=stderr_drain.data(), exit_code=exit_code)
