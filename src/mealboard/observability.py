"""
Meal Board - Logging setup.

Modules log through logging.getLogger(__name__); entry points call
configure_logging() once to route records to the console.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_configured = False


def configure_logging(level: str = "INFO", console: Console | None = None) -> None:
    """Install a RichHandler on the mealboard logger. Safe to call twice."""
    global _configured

    logger = logging.getLogger("mealboard")
    logger.setLevel(level)
    if _configured:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    _configured = True
