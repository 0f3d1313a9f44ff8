"""selfie_calendar - recurring event expansion for the student productivity calendar.

Expands stored events and activities into the concrete occurrences visible in a
calendar window. Imports are kept light so the package can be inspected without
pulling in the HTTP stack.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors the SELFIE_DEBUG environment variable (truthy values: "1", "true",
    "yes"), which forces DEBUG verbosity.
    """
    from .logging_config import install_console_handler

    install_console_handler(level_name)


def run_calendar(args: object) -> int:
    """Render one calendar window and print it.

    Args:
        args: Parsed command line namespace (see ``selfie_calendar.__main__``)

    Returns:
        Process exit code: 0 on success, 2 on a configuration or data load error
    """
    import os

    _init_logging(os.environ.get("SELFIE_LOG_LEVEL"))

    from .cli import run

    return run(args)
