"""
Application logger.

Writes to stdout and to a rotating file under LOG_DIR (read by operators as
`logs/app.log`). Every record is also counted in the Prometheus
`log_messages_total` metric.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from storefront.config.settings import LOG_DIR, LOG_LEVEL
from storefront.utils.prometheus_metrics import record_log

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class MetricsHandler(logging.Handler):
    """Counts log records per level."""

    def emit(self, record: logging.LogRecord) -> None:
        record_log(record.levelname)


def _build_logger() -> logging.Logger:
    log = logging.getLogger("storefront")
    if log.handlers:
        return log

    log.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    log.addHandler(stream_handler)

    try:
        Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            Path(LOG_DIR) / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        log.addHandler(file_handler)
    except OSError as e:
        log.warning(f"[Logger] File logging disabled: {e}")

    log.addHandler(MetricsHandler())
    log.propagate = False
    return log


logger = _build_logger()
