"""Process-wide logging configuration."""

import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_NOISY_LOGGERS = ("sqlalchemy", "httpx", "httpcore", "openai", "passlib")


def setup_logging(level: int = logging.INFO) -> None:
    """Send application logs to stdout once, regardless of how often it is called."""

    root_logger = logging.getLogger()
    if any(getattr(handler, "_ibkr_hub", False) for handler in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler._ibkr_hub = True  # type: ignore[attr-defined]
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
