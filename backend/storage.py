import logging
import time

from sqlalchemy import delete
from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from errors import NotFoundError, TransientStorageError
from models import db, CipherHistory, User
from schemas import CipherHistoryCreate

logger = logging.getLogger(__name__)

# Connection level failures worth another attempt. Constraint violations,
# bad SQL and programming errors are raised on the first failure.
TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)

MAX_STORED_TEXT = 1000


def truncate_text(text, limit=MAX_STORED_TEXT):
    """Cap stored input/output text at `limit` characters plus '...'"""
    if text is not None and len(text) > limit:
        return text[:limit] + '...'
    return text


def with_retry(operation, retries=3, delay=0.5, backoff=1.5, sleep=time.sleep):
    """Call `operation`, retrying transient database errors with exponential backoff.

    `retries` is the total number of attempts. The session is rolled back
    after every failure so the next attempt starts clean.
    """
    attempt = 1
    while True:
        try:
            return operation()
        except TRANSIENT_ERRORS as e:
            db.session.rollback()
            if attempt >= retries:
                logger.error(f"Database operation failed after {attempt} attempts: {str(e)}")
                raise TransientStorageError(f"Database unavailable: {str(e)}") from e
            logger.warning(f"Database operation failed ({str(e)}), retrying... ({retries - attempt} attempts left)")
            sleep(delay)
            delay *= backoff
            attempt += 1
        except Exception:
            db.session.rollback()
            raise


class DatabaseStorage:
    """CRUD access to users and cipher history through the Flask-SQLAlchemy session"""

    def __init__(self, retries=3, delay=0.5, backoff=1.5):
        self.retries = retries
        self.delay = delay
        self.backoff = backoff

    @classmethod
    def from_config(cls, config):
        return cls(
            retries=config['RETRY_ATTEMPTS'],
            delay=config['RETRY_DELAY'],
            backoff=config['RETRY_BACKOFF'],
        )

    def _run(self, operation):
        return with_retry(operation, self.retries, self.delay, self.backoff)

    # Users

    def get_user(self, user_id):
        return self._run(lambda: db.session.get(User, user_id))

    def get_user_by_username(self, username):
        return self._run(lambda: db.session.execute(
            db.select(User).where(User.username == username)
        ).scalar_one_or_none())

    def create_user(self, username, password):
        def operation():
            user = User(username=username)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user
        return self._run(operation)

    # Cipher history

    def save_history(self, record):
        """Insert a history record and return the stored row"""
        if not isinstance(record, CipherHistoryCreate):
            record = CipherHistoryCreate.model_validate(record)

        def operation():
            history = CipherHistory(
                operation=record.operation,
                algorithm=record.algorithm,
                mode=record.mode,
                key_size=record.key_size,
                input_length=record.input_length,
                output_length=record.output_length,
                processing_time=record.processing_time,
                input_text=truncate_text(record.input_text),
                output_text=truncate_text(record.output_text),
                user_id=record.user_id,
            )
            db.session.add(history)
            db.session.commit()
            return history

        history = self._run(operation)
        logger.info(f"Saved cipher history {history.id} ({history.operation} {history.algorithm})")
        return history

    def list_histories(self, limit=10):
        """Most recent records first, at most `limit` of them"""
        return self._run(lambda: db.session.execute(
            db.select(CipherHistory).order_by(CipherHistory.id.desc()).limit(limit)
        ).scalars().all())

    def get_history_by_id(self, history_id):
        history = self._run(lambda: db.session.get(CipherHistory, history_id))
        if history is None:
            raise NotFoundError('History entry not found')
        return history

    def clear_histories(self):
        """Delete every history record, returning how many were removed"""
        def operation():
            result = db.session.execute(delete(CipherHistory))
            db.session.commit()
            return result.rowcount

        deleted = self._run(operation)
        logger.info(f"Cleared {deleted} cipher history records")
        return deleted
