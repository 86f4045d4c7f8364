"""Logging configuration for the analysis worker process."""

import logging
import sys


def setup_logging(level: int | str = logging.INFO, format_string: str | None = None) -> None:
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_string,
        stream=sys.stdout,
        force=True,
    )
    logging.getLogger("card_analysis").setLevel(level)
    # SQL echo stays off unless explicitly raised
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
