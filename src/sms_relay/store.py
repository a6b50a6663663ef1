from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import SubscriberRow
from .errors import StoreError

logger = logging.getLogger(__name__)

# Dialects that support a single-statement INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS: dict[str, Callable[..., Any]] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


@dataclass(frozen=True)
class Subscriber:
    id: int
    contact: str
    is_admin: bool
    is_active: bool


def _to_subscriber(row: SubscriberRow) -> Subscriber:
    return Subscriber(
        id=row.id,
        contact=row.contact,
        is_admin=bool(row.is_admin),
        is_active=bool(row.is_active),
    )


class SubscriberStore:
    """
    Subscriber table access.

    Every call opens its own session and transaction, so a store instance can be
    shared between concurrent requests. The only concurrency control is the
    ON CONFLICT clause of `upsert`.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, contact: str) -> Subscriber | None:
        try:
            with self._session_factory() as session:
                row = session.scalars(
                    select(SubscriberRow).where(SubscriberRow.contact == contact)
                ).first()
                return _to_subscriber(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to look up {contact}") from exc

    def upsert(
        self,
        contact: str,
        *,
        is_active: bool | None = None,
        is_admin: bool | None = None,
    ) -> None:
        """
        Insert the subscriber, or update only the flags that were given.

        Flags left as None default to False when the row is created and keep
        their stored value when it already exists.

        Raises StoreError when the database operation fails.
        """
        updates = {
            name: value
            for name, value in (("is_active", is_active), ("is_admin", is_admin))
            if value is not None
        }

        try:
            with self._session_factory() as session, session.begin():
                dialect = session.get_bind().dialect.name
                insert = _UPSERT_INSERTS.get(dialect)
                if insert is None:
                    raise StoreError(f"Upsert is not supported on {dialect}")

                stmt = insert(SubscriberRow).values(
                    contact=contact,
                    is_admin=bool(is_admin),
                    is_active=bool(is_active),
                )
                if updates:
                    stmt = stmt.on_conflict_do_update(index_elements=["contact"], set_=updates)
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=["contact"])
                session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StoreError(f"Failed to update {contact}") from exc

        logger.info("Subscriber upserted", extra={"contact": contact, **updates})

    def list_active(self) -> list[Subscriber]:
        try:
            with self._session_factory() as session:
                rows = session.scalars(
                    select(SubscriberRow).where(SubscriberRow.is_active.is_(True))
                ).all()
                return [_to_subscriber(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError("Failed to list active subscribers") from exc
