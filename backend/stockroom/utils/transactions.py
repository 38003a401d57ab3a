from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session


@contextmanager
def committed(session: Session) -> Iterator[Session]:
    """
    Run one unit of work against `session` and commit it on exit.
    Any exception rolls the unit back and is re-raised.
    Usage:
        with committed(db):
            ... DB work ...

    Units are not nested: each block is its own durable write.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
