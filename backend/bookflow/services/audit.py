from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g
from bookflow import get_db
from bookflow.domain import Actor
from bookflow.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None,
              meta: Optional[Dict[str, Any]] = None, actor: Optional[Actor] = None) -> AuditLog:
    """Stage an administrative audit row (deletes, ledger appends, rate and directory changes).

    Order transitions are not written here; they live in the order's own
    activity log. ``actor`` defaults to ``g.actor`` as set by ``require_roles``.
    The row is added to the session only; the caller commits.
    """
    actor = actor or getattr(g, 'actor', None)
    row = AuditLog(
        actor_user_id=actor.id if actor else '',
        actor_role=actor.role.value if actor else None,
        action=action,
        entity=entity,
        entity_id=None if entity_id is None else str(entity_id),
        meta=dict(meta or {}),
    )
    get_db().add(row)
    return row
