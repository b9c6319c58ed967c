"""Loguru sinks for the training log API.

Modules log through ``from loguru import logger`` with a bracketed area tag
(``[SESSIONS]``, ``[NUMBERING]``, ``[HYDRATE]``). Context that should be
searchable (user_id, counts) is attached with ``logger.bind(...)`` and shows
up in the ``extra`` field of the structured file sink.
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logger(
    level: str = "INFO",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """Replace loguru's default sink with the service sinks.

    Args:
        level: Minimum level for every sink
        log_file: Optional JSON-lines file; rotated and compressed
        rotation: Size or age at which the file is rotated (e.g. "10 MB")
        retention: How long rotated files are kept (e.g. "7 days")
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level, colorize=True)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            level=level,
            serialize=True,
            rotation=rotation,
            retention=retention,
            compression="zip",
            enqueue=True,
            diagnose=False,
        )

    logger.bind(log_file=log_file or None).info(f"Logger initialized with level={level}")
