"""Root logger configuration for the ai-git CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(debug: bool = False, console: Console | None = None) -> None:
    """Route log records through Rich on stderr.

    WARNING and above are shown by default; ``debug`` lowers the threshold
    and enables rich tracebacks for the state-machine transition log.
    """
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_level=True,
        show_path=False,
        show_time=debug,
        rich_tracebacks=debug,
        markup=False,
    )
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)
    # httpx logs every request and transitions every callback at INFO
    for noisy in ("httpx", "transitions"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


__all__ = ["configure_logging"]
