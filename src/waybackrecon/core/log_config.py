"""
Structured logging setup.

All components log through structlog with snake_case event names. Logs go
to stderr so stdout stays reserved for progress lines and the final
completion message.
"""

import logging
import sys

import structlog


def _stderr_logger_factory(*args) -> structlog.PrintLogger:
    # Resolve sys.stderr per logger so redirected streams are honored
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(verbose: bool = False) -> None:
    """
    Configure structlog for command line use.

    Args:
        verbose: Show info-level events (query progress, page counts)
            instead of warnings and errors only
    """
    level = logging.INFO if verbose else logging.WARNING

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
