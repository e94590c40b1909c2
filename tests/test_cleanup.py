from unittest.mock import MagicMock

import pytest
from celery import Celery

from app.core.config import OTP_CLEANUP_DELAY_MS
from app.core.queue import CLEANUP_QUEUE, DELETE_UNVERIFIED_TASK, CleanupQueue, create_celery
from app.models.user import User
from app.services.otp import issue_otp, verify_otp
from cleanup_worker.main import Worker
from cleanup_worker.processors.cleanup import CleanupProcessor


@pytest.fixture
def processor(session_factory):
    return CleanupProcessor(session_factory)


def _exists(db, email):
    db.expire_all()
    return db.query(User).filter(User.email == email).first() is not None


def test_unverified_record_is_gone_after_delay(client, db, queue, processor):
    client.post("/api/authusers/send-otp", json={"email": "late@example.com"})

    assert queue.advance(OTP_CLEANUP_DELAY_MS - 1, processor.handle) == 0
    assert _exists(db, "late@example.com")

    assert queue.advance(1, processor.handle) == 1
    assert not _exists(db, "late@example.com")


def test_record_verified_before_delay_persists(client, db, queue, processor, mailer):
    client.post("/api/authusers/send-otp", json={"email": "quick@example.com"})
    code = mailer.last_code("quick@example.com")

    queue.advance(OTP_CLEANUP_DELAY_MS // 2, processor.handle)
    response = client.post("/api/authusers/validate", json={"email": "quick@example.com", "otp": code})
    assert response.status_code == 200

    assert queue.advance(OTP_CLEANUP_DELAY_MS, processor.handle) == 1
    assert _exists(db, "quick@example.com")


def test_redelivered_task_is_harmless(db, cipher, processor):
    issue_otp(db, cipher, "redeliver@example.com")

    assert processor.handle("redeliver@example.com") is True
    assert processor.handle("redeliver@example.com") is False
    assert not _exists(db, "redeliver@example.com")


def test_redelivery_after_verification_keeps_record(db, cipher, processor):
    _, otp = issue_otp(db, cipher, "between@example.com")

    verify_otp(db, cipher, "between@example.com", otp)
    assert processor.handle("between@example.com") is False
    assert processor.handle("between@example.com") is False
    assert _exists(db, "between@example.com")


def test_empty_payload_is_ignored(processor):
    assert processor.handle("") is False


def test_cleanup_queue_schedules_with_countdown():
    celery = MagicMock()

    CleanupQueue(celery).enqueue(DELETE_UNVERIFIED_TASK, {"email": "a@b.com"}, OTP_CLEANUP_DELAY_MS)

    celery.send_task.assert_called_once_with(
        DELETE_UNVERIFIED_TASK,
        kwargs={"email": "a@b.com"},
        countdown=600.0,
        queue=CLEANUP_QUEUE,
    )


def test_celery_is_configured_for_at_least_once_delivery():
    celery = create_celery("memory://")

    assert celery.conf.task_acks_late is True
    assert celery.conf.task_reject_on_worker_lost is True
    assert celery.conf.task_routes[DELETE_UNVERIFIED_TASK] == {"queue": CLEANUP_QUEUE}


def test_worker_registers_delete_task(settings, session_factory, db, cipher):
    celery = Celery("test", broker="memory://")
    worker = Worker(settings, celery=celery, session_factory=session_factory)
    issue_otp(db, cipher, "task@example.com")

    assert DELETE_UNVERIFIED_TASK in celery.tasks
    result = worker.delete_unverified.apply(kwargs={"email": "task@example.com"})

    assert result.get() is True
    assert not _exists(db, "task@example.com")
