from __future__ import annotations
"""Audit logging decorator to keep add_audit() calls out of route bodies.

Usage examples:

@audit_log('LEDGER.BONUS.CREATE', entity='Bonus', entity_id_key='id', meta_keys=['user_id', 'amount'])
def add_bonus():
    ... return {'id': bonus.id, 'user_id': ..., 'amount': ...}, 201

@audit_log('RATE.STORY.SET', entity='Printer', entity_id_arg='printer_id', diff_keys=['story_rate'],
           pre_fetch=lambda a, kw: _printer_snapshot(kw['printer_id']))
def set_printer_rate(printer_id): ...

Parameters:
  action: required audit action code
  entity: optional entity label
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: keys to project from the returned JSON into meta.
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys.
  diff_keys / pre_fetch: record {'before', 'after'} for keys that changed.

Only successful calls are audited: if the view raises, nothing is written.
"""

import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from sqlalchemy.exc import SQLAlchemyError

from bookflow.services.audit import add_audit
from bookflow import get_db

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, original_rv) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        return rv[0], rv
    return rv, rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    commit: bool = True,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = pre_fetch(args, kwargs) if diff_keys and pre_fetch else None
            rv = fn(*args, **kwargs)
            data, _ = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            meta = None
            if meta_builder:
                meta = meta_builder(data, rv, args, kwargs)
            elif meta_keys:
                meta = {k: data.get(k) for k in meta_keys if k in data}
            if diff_keys and isinstance(before_snapshot, dict):
                changes = {}
                for k in diff_keys:
                    if k in before_snapshot and k in data and before_snapshot.get(k) != data.get(k):
                        changes[k] = {'before': before_snapshot.get(k), 'after': data.get(k)}
                if changes:
                    meta = dict(meta or {})
                    meta['changes'] = changes
            add_audit(action, entity, entity_id, meta)
            if commit:
                session = get_db()
                try:
                    session.commit()
                except SQLAlchemyError:
                    # action already committed; audit row is best-effort
                    session.rollback()
                    logger.exception('audit write failed for %s', action)
            return rv
        return wrapper
    return outer
