from __future__ import annotations
"""Role-scoped projection of the order collection plus free-text search."""
from typing import Iterable, List, Optional

from bookflow.domain import Order, OrderStatus, UserRole
from bookflow.services.policy import is_visible_to

# Arabic-Indic (U+0660..U+0669) and Extended/Persian (U+06F0..U+06F9) digits -> ASCII
_DIGITS = {0x0660 + i: str(i) for i in range(10)}
_DIGITS.update({0x06F0 + i: str(i) for i in range(10)})


def normalize_digits(text: Optional[str]) -> str:
    return (text or '').translate(_DIGITS)


def visible_orders(role: UserRole, user_id: Optional[str], orders: Iterable[Order]) -> List[Order]:
    return [o for o in orders if is_visible_to(role, user_id, o)]


def _haystack(order: Order) -> List[str]:
    c = order.customer
    values = [order.id, c.name, c.phone, c.alt_phone, order.story.owner_name]
    return [normalize_digits(v).casefold() for v in values if v]


def search_orders(orders: Iterable[Order], query: Optional[str]) -> List[Order]:
    """Substring match over id, customer name, phones and story owner name.

    Both sides are digit-normalised, so a phone typed with Eastern Arabic numerals
    matches one stored with Western digits and the other way round.
    """
    needle = normalize_digits(query).strip().casefold()
    orders = list(orders)
    if not needle:
        return orders
    return [o for o in orders if any(needle in v for v in _haystack(o))]


def filter_orders(role: UserRole, user_id: Optional[str], orders: Iterable[Order],
                  query: Optional[str] = None, status: Optional[OrderStatus] = None) -> List[Order]:
    out = visible_orders(role, user_id, orders)
    if status is not None:
        out = [o for o in out if o.status == OrderStatus(status)]
    return search_orders(out, query)


__all__ = ['normalize_digits', 'visible_orders', 'search_orders', 'filter_orders']
