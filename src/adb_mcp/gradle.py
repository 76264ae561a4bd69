from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Callable, List, Tuple

from .adb import classify
from .errors import CommandError, CommandFailed
from .logging import get_logger
from .process import Completed, ProcessOutcome, ProcessSpec, execute

logger = get_logger(__name__)

Executor = Callable[[ProcessSpec], ProcessOutcome]


def wrapper_name() -> str:
    return "gradlew.bat" if os.name == "nt" else "gradlew"


def assemble_task(build_type: str) -> str:
    build_type = build_type.strip() or "Debug"
    return "assemble" + build_type[0].upper() + build_type[1:]


class GradleClient:
    """Runs ``assemble<BuildType>`` through a project's Gradle wrapper."""

    def __init__(self, timeout_sec: float = 600.0, executor: Executor = execute) -> None:
        self.timeout_sec = timeout_sec
        self._execute = executor

    def assemble_args(self, project_path: str, build_type: str = "Debug") -> List[str]:
        project_dir = Path(project_path)
        if not project_dir.is_dir():
            raise CommandError(f"Project directory not found at {project_path}")

        wrapper = project_dir / wrapper_name()
        if not wrapper.is_file():
            raise CommandError(f"Gradle wrapper not found at {wrapper.resolve()}")
        if os.name != "nt" and not os.access(wrapper, os.X_OK):
            # wrappers checked out without the exec bit are common
            mode = wrapper.stat().st_mode
            wrapper.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return [str(wrapper.resolve()), assemble_task(build_type)]

    def assemble(self, project_path: str, build_type: str = "Debug") -> str:
        wrapper, task = self.assemble_args(project_path, build_type)
        logger.info("Running %s %s in %s", wrapper, task, project_path)
        outcome = self._execute(ProcessSpec.of(wrapper, [task], cwd=str(Path(project_path).resolve()), timeout=self.timeout_sec))
        if isinstance(outcome, Completed) and outcome.exit_code != 0:
            stdout, stderr = _decode(outcome)
            raise CommandFailed(
                f"Gradle build failed (exit {outcome.exit_code}):\n{stdout}\n{stderr}",
                data={"exit_code": outcome.exit_code},
            )
        stdout, stderr = _decode(classify(outcome, program="Gradle", executable=wrapper))
        return stdout + "\n" + stderr


def _decode(outcome: Completed) -> Tuple[str, str]:
    return (
        outcome.stdout.decode("utf-8", errors="replace"),
        outcome.stderr.decode("utf-8", errors="replace"),
    )
