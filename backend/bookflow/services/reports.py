from __future__ import annotations
"""Monthly activity report built from an order snapshot.

Orders are bucketed by ``created_at``. Designer and printer counts use the same
"done" status sets as the earnings calculators.
"""
from collections import Counter
from typing import Any, Dict, Iterable, List

from bookflow.constants.permissions import DESIGN_DONE_STATUSES, PRINT_DONE_STATUSES
from bookflow.domain import Order, OrderStatus, Printer, User, UserRole
from bookflow.services.accounting import DateWindow
from bookflow.services.policy import DEFAULT_DOMESTIC_COUNTRIES, is_domestic

LIBYA_NAMES = ('Libya', 'ليبيا')


def _country_bucket(country: str, domestic_countries) -> str:
    if is_domestic(country, domestic_countries):
        return 'domestic'
    if is_domestic(country, LIBYA_NAMES):
        return 'libya'
    return 'other'


def monthly_report(orders: Iterable[Order], users: Iterable[User], printers: Iterable[Printer],
                   year: int, month: int,
                   domestic_countries: Iterable[str] = DEFAULT_DOMESTIC_COUNTRIES) -> Dict[str, Any]:
    window = DateWindow.month(year, month)
    domestic_countries = tuple(domestic_countries)
    in_month: List[Order] = [o for o in orders if window.contains(o.created_at)]
    users = list(users)

    created = Counter(o.created_by for o in in_month)
    designs = Counter(o.assigned_to_designer for o in in_month
                      if o.assigned_to_designer and o.status in DESIGN_DONE_STATUSES)
    printed = Counter(o.assigned_to_printer for o in in_month
                      if o.assigned_to_printer and o.status in PRINT_DONE_STATUSES)

    countries = {b: {'count': 0, 'revenue': 0.0} for b in ('domestic', 'libya', 'other')}
    for o in in_month:
        bucket = countries[_country_bucket(o.customer.country, domestic_countries)]
        bucket['count'] += 1
        bucket['revenue'] += o.price

    statuses = Counter(o.status for o in in_month)
    return {
        'year': year,
        'month': month,
        'sales': [
            {'user_id': u.id, 'name': u.name, 'created': created.get(u.id, 0)}
            for u in users if u.role == UserRole.SALES
        ],
        'designers': [
            {'user_id': u.id, 'name': u.name, 'designs': designs.get(u.id, 0)}
            for u in users if u.role == UserRole.DESIGNER
        ],
        'printers': [
            {'printer_id': p.id, 'name': p.name, 'printed': printed.get(p.id, 0)}
            for p in printers
        ],
        'countries': countries,
        'status': {
            'total': len(in_month),
            'delivered': statuses.get(OrderStatus.DELIVERED, 0),
            'cancelled': statuses.get(OrderStatus.CANCELLED, 0),
            'designing': statuses.get(OrderStatus.DESIGNING, 0),
            'printing': statuses.get(OrderStatus.PRINTING, 0),
        },
    }


__all__ = ['monthly_report', 'LIBYA_NAMES']
