# Overview: Append-only audit trail for domain events.

from __future__ import annotations

import json
from datetime import datetime
from typing import Optional

from ..models import AuditLog
"""
Audit Log Invariants

- Append-only: rows are never updated or deleted.
- Events are added to the caller's session; they commit or roll back
  together with the change they describe.
- No business logic here.
"""


def append_audit_event(
    session,
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> AuditLog:
    event = AuditLog(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        note=note,
        payload=json.dumps(payload, sort_keys=True) if payload is not None else None,
    )
    # Left unset, the column takes the DB default
    if occurred_at is not None:
        event.occurred_at = occurred_at
    session.add(event)
    return event


def list_audit_events(
    session,
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    event_type: str | None = None,
    limit: int = 50,
) -> list[AuditLog]:
    q = session.query(AuditLog)
    if entity_type:
        q = q.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditLog.entity_id == entity_id)
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    return q.order_by(AuditLog.id.desc()).limit(limit).all()
