from celery import Celery
from sqlalchemy.exc import OperationalError

from app.core.config import Settings, get_settings
from app.core.database import create_db_engine, create_session_factory
from app.core.logger import get_logger
from app.core.queue import CLEANUP_QUEUE, DELETE_UNVERIFIED_TASK, create_celery
from cleanup_worker.processors.cleanup import CleanupProcessor


class Worker:
	def __init__(self, settings: Settings, celery: Celery = None, session_factory=None):
		self._logger = get_logger(__name__, service="worker")
		self._engine = None
		if session_factory is None:
			self._engine = create_db_engine(settings.database_url)
			session_factory = create_session_factory(self._engine)
		self._processor = CleanupProcessor(session_factory)
		self.celery = celery or create_celery(settings.broker_url)
		self.delete_unverified = self._register()

	def _register(self):
		processor = self._processor

		# Database outages are retried by the queue; the task itself is
		# idempotent so a retry after a partial run is harmless.
		@self.celery.task(
			name=DELETE_UNVERIFIED_TASK,
			acks_late=True,
			reject_on_worker_lost=True,
			autoretry_for=(OperationalError,),
			retry_backoff=True,
			max_retries=5,
		)
		def delete_unverified(email: str) -> bool:
			return processor.handle(email)

		return delete_unverified

	def run(self) -> None:
		self._logger.info("worker_starting", queue=CLEANUP_QUEUE)
		try:
			self.celery.worker_main([
				"worker",
				"--loglevel=INFO",
				f"--queues={CLEANUP_QUEUE}",
				"--concurrency=1",
			])
		finally:
			if self._engine is not None:
				self._engine.dispose()
			self._logger.info("worker_stopped")


if __name__ == "__main__":
	Worker(get_settings()).run()
