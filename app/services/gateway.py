import logging
from typing import Any, Callable, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql import Executable

from app.services.results import Err, Ok, PersistenceFailure, Result

logger = logging.getLogger(__name__)


def _failure(exc: SQLAlchemyError) -> PersistenceFailure:
    if isinstance(exc, IntegrityError):
        return PersistenceFailure("constraint violated", retryable=False)
    if isinstance(exc, OperationalError):
        return PersistenceFailure("database unavailable", retryable=True)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return PersistenceFailure("database connection lost", retryable=True)
    return PersistenceFailure("database error", retryable=False)


class PersistenceGateway:
    """
    Thin wrapper over a SQLAlchemy session factory.

    - execute(sql, params): one statement (SQL text or a Core select) on its
      own pooled connection, rows back as plain dicts.
    - with_transaction(fn, read_back): run fn(session) as one atomic unit.
      Ok → commit, then optionally read the committed state back.
      Err or a driver exception before the commit → rollback.
      The session is always closed, which returns its connection to the pool.

    Only failures that left the database untouched are marked retryable. A
    commit whose outcome is unknown, or a read-back that fails after the
    commit, is reported with ``retryable=False`` (and ``committed=True`` for
    the latter) so callers never replay a write that may have landed.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def execute(self, sql: str | Executable, params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        stmt = text(sql) if isinstance(sql, str) else sql
        with self._session_factory() as db:
            res = db.execute(stmt, params or {})
            if not res.returns_rows:
                db.commit()
                return []
            return [dict(r) for r in res.mappings().all()]

    def with_transaction(
        self,
        fn: Callable[[Session], Result],
        read_back: Optional[Callable[[Session, Any], Any]] = None,
    ) -> Result:
        db: Session = self._session_factory()
        try:
            committing = False
            try:
                db.begin()
                result = fn(db)
                if isinstance(result, Err):
                    db.rollback()
                    logger.warning("rolled back: %s (%s)", result.error.kind, result.error.message)
                    return result
                committing = True
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                if committing:
                    logger.error("commit failed, outcome unknown: %s", exc.__class__.__name__, exc_info=exc)
                    return Err(PersistenceFailure("commit outcome unknown", retryable=False))
                logger.error("transaction failed, rolled back: %s", exc.__class__.__name__, exc_info=exc)
                return Err(_failure(exc))

            if read_back is None:
                return result
            try:
                return Ok(read_back(db, result.value))
            except SQLAlchemyError as exc:
                logger.error("committed but read back failed: %s", exc.__class__.__name__, exc_info=exc)
                return Err(PersistenceFailure("changes were saved but could not be read back",
                                              retryable=False, committed=True))
        finally:
            db.close()
