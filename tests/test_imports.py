def test_import_package():
    import adb_mcp  # noqa: F401


def test_outcome_shapes():
    from adb_mcp.process import Completed, LaunchFailed, TimedOut

    done = Completed(stdout=b"", stderr=b"", exit_code=0)
    assert done.stdout == b""
    assert TimedOut(timeout=1.0) != LaunchFailed("x")
