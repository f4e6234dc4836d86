# src/doclib/core/logging.py
"""Logging setup for doclib processes.

Flag transitions are logged through structlog. SQLAlchemy and the
database driver log through stdlib logging; both end up on one stdout
handler rendered the same way (console or JSON lines).
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import ProcessorFormatter

# Statement and pool chatter; only WARNING and up unless SQL echo is asked for.
_SQL_LOGGERS: tuple[str, ...] = ("sqlalchemy", "sqlalchemy.pool", "psycopg")
_SQL_STATEMENT_LOGGER = "sqlalchemy.engine"

_PRE_CHAIN: tuple[Any, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.stdlib.PositionalArgumentsFormatter(),
)


def _renderer_chain(json_output: bool) -> list[Any]:
    if json_output:
        return [
            ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [ProcessorFormatter.remove_processors_meta, structlog.dev.ConsoleRenderer(colors=True)]


def configure_logging(*, json_output: bool = False, level: str = "INFO", sql_echo: bool = False) -> None:
    """Route structlog and stdlib logging to one stdout handler.

    Safe to call more than once; each call replaces the root handler.

    Args:
        json_output: Emit one JSON object per line instead of console text.
        level: Root log level name, any case.
        sql_echo: Log every SQL statement at INFO. Use this rather than
            ``create_engine(echo=True)``, which installs its own handler.
    """
    log_level = logging.getLevelNamesMapping()[level.upper()]

    structlog.configure(
        processors=[*_PRE_CHAIN, ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Loggers are rebuilt per call so tests can reconfigure
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ProcessorFormatter(processors=_renderer_chain(json_output), foreign_pre_chain=list(_PRE_CHAIN)))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    quiet_level = max(log_level, logging.WARNING)
    for name in _SQL_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    logging.getLogger(_SQL_STATEMENT_LOGGER).setLevel(logging.INFO if sql_echo else quiet_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for a module (typically ``__name__``)."""
    logger: structlog.stdlib.BoundLogger = structlog.get_logger(name)
    return logger
