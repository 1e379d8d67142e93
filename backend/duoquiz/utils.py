import logging
import time
import uuid


def now_ts() -> float:
    return time.time()


def new_session_id() -> str:
    return uuid.uuid4().hex


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure basic logging for the service and return the package logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("duoquiz")
