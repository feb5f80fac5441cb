import logging
import os
import sys
import typing

from dotenv import load_dotenv

from cli import run
from database import DataError
from dawg import DominosService
from lifecycle import Context

logger = logging.getLogger("apizza")

DEFAULT_DB = os.path.join("~", ".apizza", "cache", "apizza.db")
DEFAULT_TIMEOUT = 10.0


# reads a number from the environment, falling back to default if it is missing or bad
def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("%s=%r is not a number, using %s", name, value, default)
        return default


def setup_logging():
    level_name = os.getenv("APIZZA_LOG_LEVEL", "WARNING").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    if level_name != logging.getLevelName(level):
        logger.warning("unknown log level %s, using WARNING", level_name)


def main(argv: typing.Optional[typing.List[str]] = None) -> int:
    load_dotenv()
    setup_logging()

    # instantiate the ordering service and a Context object to run one command
    service = DominosService(timeout=env_float("APIZZA_TIMEOUT", DEFAULT_TIMEOUT))
    context = Context(os.getenv("APIZZA_DB", DEFAULT_DB), service)
    try:
        # the context saves the configuration and closes the database on the way out
        with context:
            message = run(context, sys.argv[1:] if argv is None else argv)
        if message:
            print(message)
    except DataError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        service.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
