from __future__ import annotations
from flask import Blueprint, request, g
from bookflow import get_store, domestic_countries
from bookflow.decorators.auth import require_roles
from bookflow.domain import UserRole, utcnow
from bookflow.exceptions import ValidationError
from bookflow.services.reports import monthly_report
from bookflow.services.store import ORDERS, PRINTERS, USERS

rpt_bp = Blueprint('reports', __name__)


def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'{name} must be int', field=name, value=raw)


def _scoped(report: dict, actor) -> dict:
    """Trim the full report to what the caller's role may see."""
    base = {'year': report['year'], 'month': report['month']}
    if actor.role == UserRole.ADMIN:
        return report
    if actor.role == UserRole.SALES:
        base['sales'] = [r for r in report['sales'] if r['user_id'] == actor.id]
    elif actor.role == UserRole.DESIGNER:
        base['designers'] = [r for r in report['designers'] if r['user_id'] == actor.id]
    elif actor.role == UserRole.PRINTER:
        base['printers'] = report['printers']
    return base


@rpt_bp.get('/monthly')
@require_roles(UserRole.ADMIN, UserRole.SALES, UserRole.DESIGNER, UserRole.PRINTER)
def monthly():
    now = utcnow()
    year = _int_arg('year', now.year)
    month = _int_arg('month', now.month)
    store = get_store()
    report = monthly_report(store.list(ORDERS), store.list(USERS), store.list(PRINTERS), year, month,
                            domestic_countries())
    return _scoped(report, g.actor)
