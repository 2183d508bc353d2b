"""
Logging setup shared by the API, CLI and flows.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging once per process.

    Args:
        level: Log level name (e.g., "INFO", "DEBUG")
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
    # httpx logs every request at INFO, which drowns the pipeline's own output
    logging.getLogger("httpx").setLevel(logging.WARNING)
