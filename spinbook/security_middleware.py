"""
Row-Level Security helpers.

Policies in migrations/001_initial_schema.sql read two settings:
- app.current_user_id: id of the authenticated DJ
- app.current_role: 'dj' for DJ sessions, 'service' for trusted server paths
  (public booking intake, token tracker, webhooks, cron, hooks)

The context is kept in ``session.info`` and written with transaction-local
``set_config`` at the start of every transaction the session opens, so it
survives commits and never leaks to the next user of a pooled connection.
Nothing is sent to databases without RLS (SQLite in local runs/tests).
"""

import logging
from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

RLS_CONTEXT_KEY = "rls_context"

APPLY_SQL = (
    "SELECT set_config('app.current_user_id', :user_id, true), "
    "set_config('app.current_role', :role, true)"
)


def _supports_rls(connection) -> bool:
    return connection.dialect.name == "postgresql"


def get_rls_context(db: Session) -> Optional[dict]:
    return db.info.get(RLS_CONTEXT_KEY)


def _set_context(db: Session, role: str, user_id: str = "") -> None:
    context = {"role": role, "user_id": user_id}
    db.info[RLS_CONTEXT_KEY] = context
    if not _supports_rls(db.get_bind()):
        return
    try:
        # Covers the transaction already in progress; later ones go through the hook
        db.execute(text(APPLY_SQL), context)
    except Exception as e:
        logger.error(f"Failed to set RLS context role={role} user_id={user_id}: {e}")
        raise


def set_rls_context(db: Session, user_id: int) -> None:
    """
    Set the RLS context for a database session.

    Called from the auth dependencies once the DJ is known, so every query in
    the request only sees rows the DJ owns plus published profiles.
    """
    _set_context(db, "dj", str(user_id))
    logger.debug(f"RLS context set for user_id={user_id}")


def use_service_role(db: Session) -> None:
    """Run the rest of the session as the trusted server role"""
    _set_context(db, "service")
    logger.debug("RLS service role enabled for this session")


def reapply_rls_context(session: Session, _transaction, connection) -> None:
    """after_begin hook: restore the session's context on the new transaction"""
    context = session.info.get(RLS_CONTEXT_KEY)
    if not context or not _supports_rls(connection):
        return
    connection.execute(text(APPLY_SQL), context)


def install_rls_context(session_factory: sessionmaker) -> None:
    if not event.contains(session_factory, "after_begin", reapply_rls_context):
        event.listen(session_factory, "after_begin", reapply_rls_context)
        logger.info("🔒 RLS context re-applied at the start of every transaction")
