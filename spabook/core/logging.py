# spabook/core/logging.py
import json
import logging
from datetime import datetime, timezone

from spabook.core.config import settings


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False)


def setup_logging(level: str | None = None, as_json: bool | None = None) -> logging.Logger:
    """
    Configure the root logger once (console only).
    Safe to call again: the handler installed here is replaced, not duplicated.
    """
    logger = logging.getLogger()
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    for h in list(logger.handlers):
        if getattr(h, "_spabook", False):
            logger.removeHandler(h)

    console = logging.StreamHandler()
    use_json = settings.LOG_JSON if as_json is None else as_json
    if use_json:
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    console._spabook = True  # type: ignore[attr-defined]
    logger.addHandler(console)

    return logger
