import pytest

from adb_mcp.process import Completed


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch):
    # keep host configuration out of every test
    for name in (
        "ADB_MCP_CONFIG",
        "ADB_MCP_ADB_PATH",
        "ADB_MCP_ADB_TIMEOUT",
        "ADB_MCP_GRADLE_TIMEOUT",
        "ADB_MCP_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class StubExecutor:
    """Records every ProcessSpec and answers with queued outcomes."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.specs = []

    def __call__(self, spec):
        self.specs.append(spec)
        if self.outcomes:
            return self.outcomes.pop(0)
        return Completed(stdout=b"", stderr=b"", exit_code=0)

    @property
    def argv(self):
        return list(self.specs[-1].args)


@pytest.fixture
def stub_executor():
    return StubExecutor
