from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def smart_transaction(session: Session) -> Iterator[Session]:
    """
    Unit of work around the given Session.

    If a transaction is already active, start a nested SAVEPOINT (begin_nested)
    so only this block rolls back on error. Otherwise start a normal
    transaction (begin) that commits when the block exits cleanly.
    Usage:
        with smart_transaction(db):
            ... DB work ...
    """
    if session.in_transaction():
        cm = session.begin_nested()
    else:
        cm = session.begin()
    with cm:
        yield session
