import json
import logging
import os
import sys
from datetime import datetime, timezone

_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    def __init__(self, service: str):
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self._service,
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key.startswith("_") or key in _RECORD_ATTRS:
                continue
            payload[key] = value

        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextLogger(logging.LoggerAdapter):
    """Turns keyword arguments into structured fields.

    ``logger.info("otp_issued", email=email)`` ends up as an ``email`` key in
    the JSON line instead of being interpolated into the message.
    """

    def process(self, msg, kwargs):
        reserved = {"exc_info", "stack_info", "stacklevel", "extra"}
        extra = dict(self.extra)
        extra.update(kwargs.get("extra", {}))
        for key, value in list(kwargs.items()):
            if key in reserved:
                continue
            extra[key] = value

        clean_kwargs = {key: value for key, value in kwargs.items() if key in reserved}
        clean_kwargs["extra"] = extra
        return msg, clean_kwargs

    def bind(self, **context) -> "ContextLogger":
        return ContextLogger(self.logger, {**self.extra, **context})


def get_logger(name: str, service: str = "api") -> ContextLogger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logger.setLevel(level)
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter(service))
        logger.addHandler(handler)
        logger.propagate = False
    return ContextLogger(logger, {})
