import logging

import structlog


def configure_logging(level: str = "INFO") -> None:
    """Console structlog output with ISO timestamps, filtered at ``level``."""
    numeric = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
