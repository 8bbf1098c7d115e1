import logging
import sys


def configure_logging(level: str | int = logging.INFO) -> None:
    """
    Configure process-wide logging for services embedding Cadence.

    Library modules only create loggers; the embedding service decides where
    records go by calling this once at startup.
    """
    logging.basicConfig(
        level=level,
        format="%(levelname)s:%(name)s:%(message)s",
        stream=sys.stderr,
    )
    logging.getLogger("cadence").setLevel(level)
