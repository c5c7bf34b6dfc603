from __future__ import annotations
"""Bulk operations over a multi-order selection.

A selection is only valid while every order in it shares one status. Adding an
order from another stage is answered with the ``SelectionMismatch`` signal, not
an exception. Running a bulk action sends each order through the transition
engine on its own: one failure never undoes the orders already applied.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from bookflow.constants.permissions import BULK_ACTIONS
from bookflow.domain import Actor, Order, OrderAction, OrderStatus
from bookflow.exceptions import BookflowError, InvalidTransition, MissingArtifact, PermissionDenied
from bookflow.services.orders import OrderService
from bookflow.services.transitions import AssignDesigner, MarkDelivered

logger = logging.getLogger(__name__)

SELECTION_MISMATCH = 'SelectionMismatch'


@dataclass(frozen=True)
class SelectionResult:
    accepted: bool
    selection: tuple
    signal: Optional[str] = None

    @property
    def status(self) -> Optional[OrderStatus]:
        return self.selection[0].status if self.selection else None


def shared_status(orders: Sequence[Order]) -> Optional[OrderStatus]:
    """The common status of ``orders``; None when empty or mixed."""
    statuses = {o.status for o in orders}
    return statuses.pop() if len(statuses) == 1 else None


def toggle_selection(selection: Sequence[Order], order: Order, add: bool = True) -> SelectionResult:
    current = tuple(selection)
    if not add:
        return SelectionResult(True, tuple(o for o in current if o.id != order.id))
    if any(o.id == order.id for o in current):
        return SelectionResult(True, current)
    if current and current[0].status != order.status:
        return SelectionResult(False, current, SELECTION_MISMATCH)
    return SelectionResult(True, current + (order,))


@dataclass(frozen=True)
class BulkFailure:
    order_id: str
    error_code: str
    detail: str


@dataclass
class BulkResult:
    applied: List[Order] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)
    signal: Optional[str] = None


class BulkCoordinator:
    def __init__(self, orders: OrderService):
        self.orders = orders

    def assign_designer(self, order_ids: Sequence[str], designer_id: str, actor: Actor) -> BulkResult:
        return self._run(order_ids, OrderAction.ASSIGN_DESIGNER, AssignDesigner(designer_id, bulk=True), actor)

    def mark_delivered(self, order_ids: Sequence[str], actor: Actor) -> BulkResult:
        return self._run(order_ids, OrderAction.MARK_DELIVERED, MarkDelivered(bulk=True), actor)

    def _run(self, order_ids: Sequence[str], action: OrderAction, command, actor: Actor) -> BulkResult:
        if not actor.is_admin:
            raise PermissionDenied('Bulk actions are limited to Admin', role=actor.role.value, action=action.value)
        ids = list(dict.fromkeys(order_ids or ()))
        if not ids:
            raise MissingArtifact('order_ids')
        result = BulkResult()
        selection = []
        for order_id in ids:
            try:
                selection.append(self.orders.get_order(order_id))
            except BookflowError as e:
                result.failed.append(BulkFailure(order_id, e.error_code, e.message))
        if not selection:
            return result
        status = shared_status(selection)
        if status is None:
            logger.info('bulk %s rejected: selection spans several statuses', action.value)
            result.signal = SELECTION_MISMATCH
            return result
        required = BULK_ACTIONS[action]
        if status != required:
            raise InvalidTransition(f'Bulk {action.value} needs orders in {required.value}',
                                    current_state=status.value, allowed_states=[required.value])
        for order in selection:
            try:
                result.applied.append(self.orders.perform(order.id, command, actor))
            except BookflowError as e:
                logger.warning('bulk %s failed for order %s: %s', action.value, order.id, e.message)
                result.failed.append(BulkFailure(order.id, e.error_code, e.message))
        return result


__all__ = [
    'SELECTION_MISMATCH', 'SelectionResult', 'shared_status', 'toggle_selection', 'BulkFailure', 'BulkResult',
    'BulkCoordinator',
]
