"""Main CLI entry point for orion-store.

Sets up directories and logging from settings.conf, then hands control to
the CLI runner.
"""

import sys

import uvloop

from orion_store.cli import CLIRunner
from orion_store.config import Paths, SettingsManager
from orion_store.exceptions import ConfigurationError
from orion_store.logger import get_logger, update_logger_from_config

logger = get_logger(__name__)


async def async_main() -> int:
    """Run the CLI asynchronously and return the exit code."""
    Paths.ensure_directories()
    try:
        settings = SettingsManager().load()
    except ConfigurationError as e:
        logger.error("Invalid settings: %s", e)  # noqa: TRY400
        print(f"❌ {e}")
        return 1
    update_logger_from_config(settings)

    logger.debug("CLI started")
    runner = CLIRunner(settings)
    try:
        return await runner.run()
    except Exception:
        logger.exception("CLI encountered an error")
        raise


def main() -> None:
    """Run the CLI application on uvloop.

    Raises:
        SystemExit: With the command's exit code

    """
    try:
        code = uvloop.run(async_main())
    except KeyboardInterrupt:
        logger.info("CLI cancelled by user")
        sys.exit(1)
    except Exception:
        logger.exception("❌ Unexpected error")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
