"""Process-wide logging setup for applications embedding the engine."""

import logging
import os
import sys

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> int:
    """
    Configure root logging to stderr.

    The level comes from ``level`` or the PROMPT_WORKFLOWS_LOG_LEVEL
    environment variable (default INFO). An invalid level prints a warning to
    stderr and falls back to INFO.

    Returns:
        The numeric log level that was applied
    """
    log_level_str = (level or os.getenv("PROMPT_WORKFLOWS_LOG_LEVEL", "INFO")).upper()

    if log_level_str not in VALID_LOG_LEVELS:
        print(
            f"Warning: Invalid PROMPT_WORKFLOWS_LOG_LEVEL '{log_level_str}'. "
            f"Valid levels: {', '.join(sorted(VALID_LOG_LEVELS))}. "
            "Using INFO.",
            file=sys.stderr,
        )
        log_level_str = "INFO"

    log_level: int = getattr(logging, log_level_str)
    logging.basicConfig(level=log_level, format=LOG_FORMAT, stream=sys.stderr)
    return log_level


__all__ = ["configure_logging", "LOG_FORMAT"]
