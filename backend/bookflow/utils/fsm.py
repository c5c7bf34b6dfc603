from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Usage:
    from bookflow.utils.fsm import ORDER_FSM
    ORDER_FSM.assert_can_transition(order.status, OrderStatus.DESIGNING)

Raises ``InvalidTransition`` if the edge does not exist.
"""
from typing import Dict, Hashable, Iterable, Set

from bookflow.domain import OrderStatus
from bookflow.exceptions import InvalidTransition


def _label(state) -> str:
    return getattr(state, 'value', str(state))


class TransitionValidator:
    def __init__(self, graph: Dict[Hashable, Set[Hashable]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def targets(self, current) -> Set[Hashable]:
        return set(self.graph.get(current, set()))

    def can_transition(self, current, target) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current, target):
        if not self.can_transition(current, target):
            raise InvalidTransition(
                f"Invalid {self.field_name} transition {_label(current)} -> {_label(target)}",
                current_state=_label(current),
                allowed_states=self.sources_of(target),
            )
        return True

    def sources_of(self, target) -> Iterable[str]:
        return [_label(s) for s, targets in self.graph.items() if target in targets]


ORDER_FSM = TransitionValidator({
    OrderStatus.NEW: {OrderStatus.DESIGNING, OrderStatus.CANCELLED},
    OrderStatus.DESIGNING: {OrderStatus.PRINTING, OrderStatus.CANCELLED},
    OrderStatus.PRINTING: {
        OrderStatus.INTERNATIONAL_SHIPPING,
        OrderStatus.DOMESTIC_SHIPPING,
        OrderStatus.CANCELLED,
    },
    OrderStatus.INTERNATIONAL_SHIPPING: {OrderStatus.DOMESTIC_SHIPPING, OrderStatus.CANCELLED},
    OrderStatus.DOMESTIC_SHIPPING: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
})

__all__ = ['TransitionValidator', 'ORDER_FSM']
