"""Central role -> capability tables to avoid scattered role/status string checks.
Extend cautiously; policy functions in ``bookflow.services.policy`` read only from here.
"""
from __future__ import annotations
from typing import Dict, FrozenSet

from bookflow.domain import OrderAction, OrderStatus, UserRole

ALL_STATUSES: FrozenSet[OrderStatus] = frozenset(OrderStatus)

ORDER_CREATOR_ROLES: FrozenSet[UserRole] = frozenset({UserRole.ADMIN, UserRole.SALES})

# Transition actions each non-Admin role may attempt (status/ownership still checked)
ROLE_ACTIONS: Dict[UserRole, FrozenSet[OrderAction]] = {
    UserRole.ADMIN: frozenset(OrderAction),
    UserRole.SALES: frozenset({
        OrderAction.CREATE,
        OrderAction.ASSIGN_DESIGNER,
        OrderAction.CANCEL,
        OrderAction.EDIT_DETAILS,
        OrderAction.DELETE,
    }),
    UserRole.DESIGNER: frozenset({OrderAction.COMPLETE_DESIGN}),
    UserRole.PRINTER: frozenset({OrderAction.COMPLETE_PRINTING}),
    UserRole.SHIPPING: frozenset({OrderAction.CONFIRM_ARRIVAL, OrderAction.MARK_DELIVERED}),
}

# Actions only the order's creator (or an Admin) may take
CREATOR_ACTIONS: FrozenSet[OrderAction] = frozenset({
    OrderAction.CANCEL,
    OrderAction.EDIT_DETAILS,
    OrderAction.DELETE,
})

# Status an order must be in for an action (any actor)
ACTION_SOURCE_STATUS: Dict[OrderAction, FrozenSet[OrderStatus]] = {
    OrderAction.ASSIGN_DESIGNER: frozenset({OrderStatus.NEW}),
    OrderAction.COMPLETE_DESIGN: frozenset({OrderStatus.DESIGNING}),
    OrderAction.COMPLETE_PRINTING: frozenset({OrderStatus.PRINTING}),
    OrderAction.CONFIRM_ARRIVAL: frozenset({OrderStatus.INTERNATIONAL_SHIPPING}),
    OrderAction.MARK_DELIVERED: frozenset({OrderStatus.DOMESTIC_SHIPPING}),
    OrderAction.CANCEL: ALL_STATUSES - {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderAction.EDIT_DETAILS: ALL_STATUSES,
    OrderAction.DELETE: ALL_STATUSES,
}

# Creator-only (non-Admin) status windows
CREATOR_STATUS_WINDOW: Dict[OrderAction, FrozenSet[OrderStatus]] = {
    OrderAction.CANCEL: frozenset({OrderStatus.NEW}),
    OrderAction.EDIT_DETAILS: ALL_STATUSES - {OrderStatus.DELIVERED},
    OrderAction.DELETE: frozenset({OrderStatus.NEW, OrderStatus.CANCELLED}),
}

ROLE_VISIBLE_STATUSES: Dict[UserRole, FrozenSet[OrderStatus]] = {
    UserRole.ADMIN: ALL_STATUSES,
    UserRole.SALES: frozenset({OrderStatus.NEW}),
    UserRole.DESIGNER: frozenset({OrderStatus.DESIGNING}),
    UserRole.PRINTER: frozenset({OrderStatus.PRINTING}),
    UserRole.SHIPPING: frozenset({OrderStatus.INTERNATIONAL_SHIPPING, OrderStatus.DOMESTIC_SHIPPING}),
}

# Work is counted as done once the order has left the role's own stage
DESIGN_DONE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PRINTING,
    OrderStatus.INTERNATIONAL_SHIPPING,
    OrderStatus.DOMESTIC_SHIPPING,
    OrderStatus.DELIVERED,
})
PRINT_DONE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.INTERNATIONAL_SHIPPING,
    OrderStatus.DOMESTIC_SHIPPING,
    OrderStatus.DELIVERED,
})

BULK_ACTIONS: Dict[OrderAction, OrderStatus] = {
    OrderAction.ASSIGN_DESIGNER: OrderStatus.NEW,
    OrderAction.MARK_DELIVERED: OrderStatus.DOMESTIC_SHIPPING,
}
