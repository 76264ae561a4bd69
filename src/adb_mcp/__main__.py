from __future__ import annotations

from .adb import AdbClient
from .config import AppConfig, load_config
from .errors import ConfigurationError
from .gradle import GradleClient
from .logging import configure_logging, get_logger
from .server import StdioServer
from .tools import ToolRegistry, build_registry

logger = get_logger("adb_mcp")


def create_registry(config: AppConfig) -> ToolRegistry:
    adb = AdbClient(executable=config.adb.executable, timeout_sec=config.adb.timeout_sec)
    gradle = GradleClient(timeout_sec=config.gradle.timeout_sec)
    logger.info("Using adb at %s", adb.executable)
    return build_registry(adb, gradle)


def main() -> None:
    try:
        config = load_config()
        configure_logging(config.logging)
        registry = create_registry(config)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(1) from exc

    StdioServer(registry).run()


if __name__ == "__main__":
    main()
