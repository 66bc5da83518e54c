"""Transactional access to the database.

Every mutating service call runs its body inside ``transaction()``: the body
either commits as a whole or nothing it wrote is visible to anyone else.
"""
from contextlib import contextmanager
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import DBAPIError, DisconnectionError, IntegrityError, OperationalError

from puzzlerace import db
from puzzlerace.errors import Conflict, StorageUnavailable


def utcnow() -> datetime:
    # Naive UTC, so values compare equal after a round trip through sqlite
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def transaction():
    session = db.session
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        current_app.logger.warning(f"[tx-conflict] {exc.orig}")
        raise Conflict('Conflicting concurrent update, please retry') from exc
    except (OperationalError, DisconnectionError) as exc:
        session.rollback()
        current_app.logger.error(f"[tx-unavailable] {exc}")
        raise StorageUnavailable('Storage is temporarily unavailable') from exc
    except DBAPIError as exc:
        session.rollback()
        if exc.connection_invalidated:
            raise StorageUnavailable('Storage connection lost') from exc
        raise
    except Exception:
        session.rollback()
        raise


def locked(query):
    """Row-lock the selected rows until the surrounding transaction ends.

    Dialects without ``FOR UPDATE`` (sqlite) serialize writers anyway.
    """
    return query.with_for_update()
