from celery import Celery

from app.core.logger import get_logger

CLEANUP_QUEUE = "cleanup"
DELETE_UNVERIFIED_TASK = "cleanup.delete_unverified"


def create_celery(broker_url: str) -> Celery:
    celery = Celery("sineva", broker=broker_url)
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        task_ignore_result=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_routes={DELETE_UNVERIFIED_TASK: {"queue": CLEANUP_QUEUE}},
        # Redis redelivers unacked messages after this window; it must
        # exceed the longest countdown we schedule.
        broker_transport_options={"visibility_timeout": 60 * 60},
        worker_prefetch_multiplier=1,
    )
    return celery


class CleanupQueue:
    def __init__(self, celery: Celery):
        self._celery = celery
        self._logger = get_logger(__name__)

    def enqueue(self, task_name: str, payload: dict, delay_ms: int) -> None:
        self._celery.send_task(
            task_name,
            kwargs=payload,
            countdown=delay_ms / 1000,
            queue=CLEANUP_QUEUE,
        )
        self._logger.info("task_enqueued", task=task_name, delay_ms=delay_ms)
