"""
Logging configuration.

All application loggers live under "zena"; services log through a child
logger per component (zena.approval, zena.policy, zena.rbac, ...) so policy
decisions can be filtered or raised to DEBUG on their own.
"""
import logging
import sys
from zena.api.core.config import settings

ROOT_LOGGER = "zena"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging() -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=_level(settings.LOG_LEVEL),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Third-party loggers stay quiet unless SQL logging is asked for
    logging.getLogger("uvicorn").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if settings.LOG_SQL else logging.WARNING)

    app_logger = logging.getLogger(ROOT_LOGGER)
    app_logger.setLevel(_level(settings.LOG_LEVEL))
    return app_logger


def get_logger(component: str) -> logging.Logger:
    """Child logger for one component, e.g. get_logger("approval") -> zena.approval."""
    return logger.getChild(component)


logger = setup_logging()
