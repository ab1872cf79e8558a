# Overview: Transaction and row-locking helpers shared by the ledger services.

from __future__ import annotations

from contextlib import contextmanager

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


@contextmanager
def atomic():
    """
    Run the enclosed block as one transaction.

    Commits when the block finishes, rolls back on any exception (business
    rule or store failure) and re-raises it, so a failed operation never
    leaves partial state behind. No retries: callers decide whether to retry
    transient store errors.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
