from sqlalchemy.orm import sessionmaker

from app.core.logger import get_logger
from app.services.otp import purge_unverified


class CleanupProcessor:
    """Deletes credential records that were never verified.

    Each call re-reads the record, so a redelivered task for an email that
    has since been verified or already removed is a no-op.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._logger = get_logger(__name__, service="worker")

    def handle(self, email: str) -> bool:
        if not email:
            self._logger.warning("cleanup_payload_invalid")
            return False

        log = self._logger.bind(email=email)
        with self._session_factory() as db:
            deleted = purge_unverified(db, email)

        if deleted:
            log.info("unverified_user_deleted")
        else:
            log.info("cleanup_skipped")
        return deleted
