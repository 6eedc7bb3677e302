import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from appUtils import IntegrityViolation, StorageError

logger = logging.getLogger(__name__)


class StorageGateway:
    """
    Thin wrapper over a SQLAlchemy session.

    Statements are Core constructs or text() with bound parameters, never
    formatted SQL strings. Outside of `transaction()` every statement commits
    on its own; inside it, the whole block commits or rolls back together.
    Driver failures come out as StorageError (IntegrityViolation for
    constraint failures) with the driver message kept in `detail`.
    """

    def __init__(self, session):
        self.session = session
        self._in_transaction = False

    def execute(self, statement, params=None):
        """Run a statement; rows as dicts if it returns rows, else the affected row count."""
        result = self._run(statement, params)
        if result.returns_rows:
            value = [dict(row) for row in result.mappings()]
        else:
            value = result.rowcount
        self._autocommit()
        return value

    def fetch_one(self, statement, params=None):
        rows = self.execute(statement, params)
        return rows[0] if rows else None

    def insert(self, statement, params=None):
        """Run an INSERT and return the generated primary key."""
        result = self._run(statement, params)
        new_id = result.inserted_primary_key[0]
        self._autocommit()
        return new_id

    @contextmanager
    def transaction(self):
        if self._in_transaction:
            yield self
            return
        self._in_transaction = True
        try:
            yield self
            self._commit()
        except Exception:
            self._rollback()
            raise
        finally:
            self._in_transaction = False

    def _run(self, statement, params):
        try:
            if params is None:
                return self.session.execute(statement)
            return self.session.execute(statement, params)
        except IntegrityError as e:
            self._rollback()
            raise IntegrityViolation("Integrity constraint violated", detail=str(e.orig)) from e
        except SQLAlchemyError as e:
            self._rollback()
            raise StorageError(detail=str(e)) from e

    def _autocommit(self):
        if not self._in_transaction:
            self._commit()

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError as e:
            self._rollback()
            raise IntegrityViolation("Integrity constraint violated", detail=str(e.orig)) from e
        except SQLAlchemyError as e:
            self._rollback()
            raise StorageError(detail=str(e)) from e

    def _rollback(self):
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            logger.error(f"[storage] Rollback failed: {e}")
