"""
Logging setup for command-line entry points.

Library modules only create ``logging.getLogger(__name__)`` loggers; handlers
are installed here, once, by whoever runs the program.
"""

import logging
from typing import Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure root logging with the project-wide format.

    Args:
        level: Logging level name or number (e.g. "DEBUG", logging.INFO).
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, force=True)
