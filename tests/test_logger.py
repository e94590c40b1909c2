import json
import logging

from app.core.logger import ContextLogger, JsonFormatter
from cleanup_worker.processors.cleanup import CleanupProcessor


class _Capture(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_keywords_become_fields():
    log = ContextLogger(logging.getLogger("test.fields"), {})

    msg, kwargs = log.process("otp_issued", {"email": "a@b.com", "exc_info": False})

    assert msg == "otp_issued"
    assert kwargs == {"exc_info": False, "extra": {"email": "a@b.com"}}


def test_bind_carries_context_into_every_call():
    base = ContextLogger(logging.getLogger("test.bind"), {"service": "worker"})
    bound = base.bind(email="a@b.com")

    _, kwargs = bound.process("cleanup_skipped", {"attempt": 2})

    assert kwargs["extra"] == {"service": "worker", "email": "a@b.com", "attempt": 2}
    assert base.extra == {"service": "worker"}


def test_json_formatter_emits_structured_fields():
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "image_saved", (), None)
    record.user_id = 7

    payload = json.loads(JsonFormatter("api").format(record))

    assert payload["event"] == "image_saved"
    assert payload["service"] == "api"
    assert payload["level"] == "INFO"
    assert payload["user_id"] == 7


def test_cleanup_logs_carry_email(session_factory):
    processor = CleanupProcessor(session_factory)
    capture = _Capture()
    processor._logger.logger.addHandler(capture)
    try:
        processor.handle("ghost@example.com")
    finally:
        processor._logger.logger.removeHandler(capture)

    record = capture.records[-1]
    assert record.getMessage() == "cleanup_skipped"
    assert record.email == "ghost@example.com"
