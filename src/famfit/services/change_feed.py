"""In-process change notifications for ledger and redemption writes.

Services stage events on the session; they are published only once the
surrounding transaction commits, and dropped if it rolls back. Consumers
(the server-sent events endpoint, tests) subscribe per family.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy import event
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

LEDGER_TABLE = "points_ledger"
REDEMPTION_TABLE = "redeemed_rewards"

_PENDING_KEY = "famfit_pending_changes"


@dataclass(frozen=True)
class ChangeEvent:
    family_id: UUID
    table: str
    action: str = "INSERT"

    def as_payload(self) -> dict[str, str]:
        return {"family_id": str(self.family_id), "table": self.table, "action": self.action}


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Thread-safe fan-out of change events keyed by family id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[UUID, list[Subscriber]] = {}

    def subscribe(self, family_id: UUID, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(family_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(family_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(family_id, None)

        return unsubscribe

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(change.family_id, []))
        for callback in callbacks:
            try:
                callback(change)
            except Exception:  # pragma: no cover - a broken subscriber must not block the rest
                logger.exception("change subscriber failed for family %s", change.family_id)


feed = ChangeFeed()


def stage_change(session: Session, change: ChangeEvent) -> None:
    """Queue an event to be published when ``session`` commits."""

    pending: list[ChangeEvent] = session.info.setdefault(_PENDING_KEY, [])
    if change not in pending:
        pending.append(change)


@event.listens_for(Session, "after_commit")
def _publish_pending(session: Session) -> None:
    if session.in_nested_transaction():
        return
    pending = session.info.pop(_PENDING_KEY, [])
    for change in pending:
        feed.publish(change)


@event.listens_for(Session, "after_rollback")
def _discard_pending(session: Session) -> None:
    if session.in_nested_transaction():
        return
    session.info.pop(_PENDING_KEY, None)
