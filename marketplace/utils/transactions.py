import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.services.errors import StorageUnavailable

log = logging.getLogger("marketplace.store")


@contextmanager
def smart_transaction(session: Session) -> Iterator:
    """
    Run the block as one unit of work on the given Session.

    If the session has not started a transaction yet, begin one and let it
    commit (or roll back) on exit. If a transaction was already opened by an
    earlier read (autobegin), adopt it: commit on success, roll back on any
    exception. Either way every write in the block lands together or not at all.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    if not session.in_transaction():
        with session.begin():
            yield
        return
    try:
        yield
    except BaseException:
        session.rollback()
        raise
    session.commit()


@contextmanager
def storage_errors(session: Session) -> Iterator:
    """
    Translate store failures raised inside the block into StorageUnavailable.

    The outermost block also ends the unit of work: whatever transaction is
    still open on exit (a read, or a call rejected before it wrote) is rolled
    back, so the next call on the same session reads committed rows instead of
    the identity map.
    """
    depth = session.info.get("storage_depth", 0)
    session.info["storage_depth"] = depth + 1
    try:
        yield
    except SQLAlchemyError as e:
        session.rollback()
        log.error("store call failed: %s: %s", type(e).__name__, e)
        raise StorageUnavailable() from e
    finally:
        session.info["storage_depth"] = depth
        if depth == 0 and session.in_transaction():
            session.rollback()
