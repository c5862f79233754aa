import curses
import os
import sys

import structlog

# Make ESC snappy
os.environ.setdefault("ESCDELAY", "25")

from _version import __version__
from app_state import AppState
from config_paths import LOG_PATH, ensure_config_dirs, load_config
from file_type_handler import FileTypeHandler
from logging_config import configure_logging
from orchestrator import Orchestrator

logger = structlog.get_logger(__name__)

USAGE = (
    "tablescope - terminal data-table viewer\n\n"
    "Usage:\n  tablescope [path ...]\n  tablescope -v\n  tablescope -h\n"
)


def _parse_args(args):
    """Return (command, paths) where command is 'version', 'help' or 'view'."""
    if "-v" in args or "-V" in args:
        return "version", []
    if "-h" in args or "--help" in args:
        return "help", []
    paths = [a for a in args if not a.startswith("-")]
    if not paths:
        return "help", []
    return "view", paths


def main():
    command, paths = _parse_args(sys.argv[1:])

    if command == "version":
        print(__version__)
        return

    if command == "help":
        print(USAGE)
        return

    ensure_config_dirs()
    log_stream = configure_logging(LOG_PATH)
    config = load_config()

    state = AppState()
    for path in paths:
        dataset = FileTypeHandler(path).dataset()
        dataset.set_column_width_config(config["COLUMN_WIDTHS"])
        state.add(dataset)
    logger.info("startup", version=__version__, datasets=state.get_names())

    def curses_main(stdscr):
        Orchestrator(stdscr, state, config).run()

    try:
        curses.wrapper(curses_main)
    finally:
        logger.info("shutdown")
        log_stream.close()


if __name__ == "__main__":
    main()
