from __future__ import annotations

import json
import logging
import os
import queue
import threading
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, Optional

from sqlalchemy import event as sa_event
from sqlalchemy.orm import Session

from stockdb.utils.dates import utcnow

logger = logging.getLogger(__name__)

REPLAY_SIZE = int(os.getenv("STOCKDB_EVENT_REPLAY_SIZE", "2000"))

_PENDING_KEY = "stockdb.pending_events"


@dataclass
class EventEnvelope:
    id: str
    type: str
    entityType: str
    entityId: str
    action: str
    timestamp: str
    actor: Optional[Dict[str, Any]]
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def organization_id(self) -> Optional[str]:
        value = (self.metadata or {}).get("organizationId")
        return str(value) if value is not None else None

    def to_json(self) -> str:
        payload = {
            "id": self.id,
            "type": self.type,
            "entityType": self.entityType,
            "entityId": self.entityId,
            "action": self.action,
            "timestamp": self.timestamp,
            "actor": self.actor,
            "metadata": self.metadata,
        }
        return json.dumps(payload, default=str)


class EventBroker:
    """
    In-process fan-out of change notifications.

    Views subscribe and refresh whatever they derived from the changed
    entity; there is no shared cache to invalidate.
    """

    def __init__(self, replay_size: int = REPLAY_SIZE) -> None:
        self._subscribers: set[queue.Queue[EventEnvelope]] = set()
        self._history: Deque[EventEnvelope] = deque(maxlen=replay_size)
        self._lock = threading.Lock()

    def subscribe(self) -> queue.Queue[EventEnvelope]:
        q: queue.Queue[EventEnvelope] = queue.Queue(maxsize=400)
        with self._lock:
            self._subscribers.add(q)
        return q

    def unsubscribe(self, q: queue.Queue[EventEnvelope]) -> None:
        with self._lock:
            self._subscribers.discard(q)

    def replay_since(
        self, *, last_event_id: str, organization_id: Optional[str]
    ) -> tuple[list[EventEnvelope], bool]:
        """Events after ``last_event_id``; the flag is True when the cursor fell out of history."""
        with self._lock:
            history = list(self._history)
        if not history:
            return [], False
        ids = [event.id for event in history]
        if last_event_id not in ids:
            return [], True
        replay = history[ids.index(last_event_id) + 1:]
        if organization_id:
            replay = [event for event in replay if event.organization_id == str(organization_id)]
        return replay, False

    def publish(self, event: EventEnvelope) -> None:
        with self._lock:
            self._history.append(event)
            subscribers: Iterable[queue.Queue[EventEnvelope]] = list(self._subscribers)
        for q in subscribers:
            try:
                q.put_nowait(event)
            except queue.Full:
                # Slow consumer: drop its oldest event to make room.
                try:
                    _ = q.get_nowait()
                    q.put_nowait(event)
                except (queue.Empty, queue.Full):
                    pass


broker = EventBroker()


def publish_change(
    db: Optional[Session] = None,
    *,
    organization_id: str,
    entity_type: str,
    entity_id: str,
    action: str,
    actor_user_id: Optional[str],
    metadata: Optional[Dict[str, Any]] = None,
) -> EventEnvelope:
    event = EventEnvelope(
        id=uuid.uuid4().hex,
        type=f"{entity_type}.{action}".lower(),
        entityType=entity_type,
        entityId=entity_id,
        action=action,
        timestamp=utcnow().isoformat(),
        actor={"userId": actor_user_id} if actor_user_id else None,
        metadata={"organizationId": organization_id, **(metadata or {})},
    )
    if db is None:
        broker.publish(event)
        logger.debug("Change published", extra={"event_type": event.type, "entity_id": entity_id})
    else:
        # Held until the session commits; a rollback discards it.
        db.info.setdefault(_PENDING_KEY, []).append(event)
    return event


def pending_changes(db: Session) -> list[EventEnvelope]:
    return list(db.info.get(_PENDING_KEY, []))


@sa_event.listens_for(Session, "after_commit")
def _publish_committed_changes(session: Session) -> None:
    events = session.info.pop(_PENDING_KEY, [])
    for event in events:
        broker.publish(event)
    if events:
        logger.debug("Committed changes published", extra={"count": len(events)})


@sa_event.listens_for(Session, "after_transaction_end")
def _discard_uncommitted_changes(session: Session, transaction) -> None:
    if transaction.parent is not None:
        return
    dropped = session.info.pop(_PENDING_KEY, [])
    if dropped:
        logger.info("Discarded changes from rolled back transaction", extra={"count": len(dropped)})


def format_sse(data: str, event: Optional[str] = None, event_id: Optional[str] = None) -> str:
    lines = []
    if event_id:
        lines.append(f"id: {event_id}")
    if event:
        lines.append(f"event: {event}")
    for chunk in data.splitlines():
        lines.append(f"data: {chunk}")
    lines.append("")
    return "\n".join(lines) + "\n"


def keepalive_message() -> str:
    payload = json.dumps({"type": "heartbeat", "ts": time.time()})
    return format_sse(payload, event="heartbeat")
