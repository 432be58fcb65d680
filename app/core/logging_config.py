# /app/core/logging_config.py

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configures the root logger once at application startup."""
    root = logging.getLogger()
    if root.handlers:
        # Uvicorn or pytest already installed handlers; only adjust the level.
        root.setLevel(level.upper())
        return
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
