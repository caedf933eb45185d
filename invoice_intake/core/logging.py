"""
Loguru configuration for the service.

Called once at application start-up. Modules import ``logger`` from loguru
directly and attach structured context as keyword arguments.
"""

import sys
from loguru import logger
from .config import settings


def setup_logging(level: str | None = None, json_output: bool | None = None):
    """
    Replace loguru's default sink with one driven by settings.

    Args:
        level: Minimum log level (default: LOG_LEVEL setting)
        json_output: Emit one JSON document per record (default: LOG_JSON setting)

    Returns:
        The configured loguru logger
    """
    level = level or settings.log_level
    json_output = settings.log_json if json_output is None else json_output

    logger.remove()
    if json_output:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
                "<level>{message}</level> | {extra}"
            ),
        )

    logger.info("Logging configured", level=level, json=json_output, env=settings.app_env)
    return logger
