from __future__ import annotations
"""Role policy: pure decisions over (role, order, action).

Nothing here touches the store or the request; callers pass the actor id where
ownership or assignment matters.
"""
from typing import Iterable, Optional, Set

from bookflow.constants.permissions import (
    ACTION_SOURCE_STATUS, CREATOR_ACTIONS, CREATOR_STATUS_WINDOW, ORDER_CREATOR_ROLES, ROLE_ACTIONS,
    ROLE_VISIBLE_STATUSES,
)
from bookflow.domain import Actor, Order, OrderAction, OrderStatus, UserRole
from bookflow.exceptions import InvalidTransition, PermissionDenied

DEFAULT_DOMESTIC_COUNTRIES = ('Egypt', 'مصر')


def can_create_order(role: UserRole) -> bool:
    return UserRole(role) in ORDER_CREATOR_ROLES


def visible_statuses(role: UserRole) -> Set[OrderStatus]:
    return set(ROLE_VISIBLE_STATUSES.get(UserRole(role), frozenset()))


def can_perform(role: UserRole, order: Order, action: OrderAction, actor_id: Optional[str] = None) -> bool:
    """True when ``role`` (acting as ``actor_id``) is authorised for ``action`` on ``order``.

    Status preconditions of the action itself are not checked here, only the
    role/ownership/assignment gates. Admin is authorised for everything.
    """
    role = UserRole(role)
    action = OrderAction(action)
    if role == UserRole.ADMIN:
        return True
    if action not in ROLE_ACTIONS.get(role, frozenset()):
        return False
    if action in CREATOR_ACTIONS:
        if actor_id is None or order.created_by != actor_id:
            return False
        return order.status in CREATOR_STATUS_WINDOW[action]
    if action == OrderAction.COMPLETE_DESIGN:
        return actor_id is not None and order.assigned_to_designer == actor_id
    return True


def assert_can_perform(actor: Actor, order: Order, action: OrderAction):
    if not can_perform(actor.role, order, action, actor.id):
        raise PermissionDenied(
            f'{actor.role.value} may not {OrderAction(action).value} order {order.id}',
            role=actor.role.value,
            action=OrderAction(action).value,
        )


def assert_source_status(order: Order, action: OrderAction):
    allowed = ACTION_SOURCE_STATUS[OrderAction(action)]
    if order.status not in allowed:
        raise InvalidTransition(
            f'Cannot {OrderAction(action).value} an order in status {order.status.value}',
            current_state=order.status.value,
            allowed_states=[s.value for s in allowed],
        )


def assert_can_create(actor: Actor):
    if not can_create_order(actor.role):
        raise PermissionDenied(f'{actor.role.value} may not create orders',
                               role=actor.role.value, action=OrderAction.CREATE.value)


def is_domestic(country: str, domestic_countries: Iterable[str] = DEFAULT_DOMESTIC_COUNTRIES) -> bool:
    needle = (country or '').strip().casefold()
    return any(needle == c.strip().casefold() for c in domestic_countries if c)


def is_visible_to(role: UserRole, user_id: Optional[str], order: Order) -> bool:
    """Read rule for a single order; the workflow board uses the same rule."""
    role = UserRole(role)
    if role == UserRole.ADMIN:
        return True
    if order.status not in ROLE_VISIBLE_STATUSES[role]:
        return role == UserRole.SALES and user_id is not None and order.created_by == user_id
    if role == UserRole.DESIGNER:
        return user_id is not None and order.assigned_to_designer == user_id
    return True


def is_visible(actor: Actor, order: Order) -> bool:
    return is_visible_to(actor.role, actor.id, order)


__all__ = [
    'DEFAULT_DOMESTIC_COUNTRIES', 'can_create_order', 'visible_statuses', 'can_perform', 'assert_can_perform',
    'assert_source_status', 'assert_can_create', 'is_domestic', 'is_visible_to', 'is_visible',
]
