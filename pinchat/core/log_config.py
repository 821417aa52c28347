import logging
import sys

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None) -> None:
    """Configure the root handler once for the server process."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level or settings.log_level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level or settings.log_level)


logger = logging.getLogger("pinchat")
