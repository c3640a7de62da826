# Overview: Locking helpers for multi-row write transactions.

from __future__ import annotations

from sqlalchemy import text

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, see begin_write_transaction.
    """
    return query.with_for_update()


def begin_write_transaction() -> None:
    """
    Take the database write lock up front on SQLite.

    SQLite has no row locks; BEGIN IMMEDIATE makes a second writer wait for
    this transaction to finish before it can read-then-write the same rows.
    Must be called before any other statement of the transaction is
    flushed. Other dialects rely on lock_for_update instead.
    """
    connection = db.session.connection()
    if connection.dialect.name != "sqlite":
        return
    # pysqlite opens its own implicit transaction on the first DML
    if not connection.connection.driver_connection.in_transaction:
        connection.execute(text("BEGIN IMMEDIATE"))
