import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


def _resolve_log_level(verbose: bool, env_var: str) -> int:
    """Resolve the log level from the environment variable or use the verbose flag."""

    level_name = os.getenv(env_var)

    if level_name:
        candidate = getattr(logging, str(level_name).upper(), None)

        if isinstance(candidate, int):
            return candidate

    return logging.DEBUG if verbose else logging.INFO


def configure_logging(
    verbose: bool = False,
    *,
    env_var: str = "DQ_LOG_LEVEL",
    console: Optional[Console] = None,
) -> int:
    """Configure logging for dqcheck runs through a Rich handler.

    The level comes from ``env_var`` when it names a valid level, otherwise
    DEBUG or INFO depending on ``verbose``. Log records go to stderr so
    report output written to stdout stays clean.

    Args:
        verbose: When True, sets log level to DEBUG unless overridden by env.
        env_var: Environment variable name to read the desired log level from.
        console: Optional console for the handler; a stderr console by default.

    Returns:
        The resolved log level.
    """

    level = _resolve_log_level(verbose, env_var)

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(
                rich_tracebacks=True,
                markup=False,
                show_path=verbose,
                console=console or Console(stderr=True),
            )
        ],
        force=True,
    )

    return level
