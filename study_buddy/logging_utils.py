"""Logging setup shared by the CLI and the web app."""

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(level: int | str = logging.INFO, console: Console | None = None) -> None:
    """
    Route all study_buddy loggers through a rich handler.

    Safe to call more than once; the handler is only installed the first time.
    """
    logger = logging.getLogger("study_buddy")
    logger.setLevel(level)

    if any(isinstance(h, RichHandler) for h in logger.handlers):
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
