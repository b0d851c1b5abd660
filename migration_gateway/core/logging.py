"""Structlog configuration and logger helpers.

Usage:
    from migration_gateway.core.logging import configure_logging, get_module_logger

    configure_logging(settings.log_level, settings.is_production)

    logger = get_module_logger()
    logger.info("user_provisioned", user_id="123")
"""

import inspect
import logging
import sys

import structlog
from structlog.stdlib import BoundLogger


def _is_test_environment() -> bool:
    return "pytest" in sys.modules


def configure_logging(log_level: str = "INFO", is_production: bool = False) -> BoundLogger:
    """Configure structlog on top of the standard logging module.

    Console rendering in development, JSON lines in production. Output is
    suppressed entirely while running under pytest.
    """
    if _is_test_environment():
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
        return structlog.stdlib.get_logger()

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if is_production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return structlog.stdlib.get_logger()


def get_module_logger() -> BoundLogger:
    """Get a logger bound to the calling module's name."""
    frame = inspect.currentframe()
    caller = frame.f_back if frame is not None else None
    module = inspect.getmodule(caller) if caller is not None else None
    if module is None:
        return structlog.stdlib.get_logger(component="unknown")
    # stays a lazy proxy until first use, so configure_logging() still applies
    return structlog.stdlib.get_logger(component=module.__name__.split(".")[-1], module_path=module.__name__)
