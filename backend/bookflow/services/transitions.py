from __future__ import annotations
"""Order transition engine.

``TransitionEngine.apply(order, command, actor)`` is the only code path that
produces a changed Order snapshot. Every command goes through the same steps:

1. role / ownership / assignment gate (``PermissionDenied``)
2. source-status precondition (``InvalidTransition``)
3. input completeness (``MissingArtifact``) and reference lookups (``NotFound``)
4. uploads, if any (``UploadFailure``; earlier uploads of the same command removed)
5. new snapshot with exactly one appended activity-log entry

The input order is never modified; on any failure the caller still holds the
unchanged snapshot.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, ClassVar, Iterable, Optional

from bookflow.domain import (
    ActivityLogEntry, Actor, Customer, FileRef, Order, OrderAction, OrderStatus, ShippingInfo, Story,
    UserRole, utcnow,
)
from bookflow.exceptions import MissingArtifact, UploadFailure, ValidationError
from bookflow.services import policy
from bookflow.services.store import PRINTERS, SHIPPING_COMPANIES, USERS, Store, fetch
from bookflow.storage.provider import StorageProvider, Upload, destination_for
from bookflow.utils.fsm import ORDER_FSM

logger = logging.getLogger(__name__)


# --- commands --- #

@dataclass(frozen=True)
class AssignDesigner:
    action: ClassVar[OrderAction] = OrderAction.ASSIGN_DESIGNER
    designer_id: Optional[str]
    bulk: bool = False


@dataclass(frozen=True)
class CompleteDesign:
    action: ClassVar[OrderAction] = OrderAction.COMPLETE_DESIGN
    printer_id: Optional[str]
    cover_image: Optional[Upload]
    final_pdf: Optional[Upload]


@dataclass(frozen=True)
class CompletePrinting:
    action: ClassVar[OrderAction] = OrderAction.COMPLETE_PRINTING
    shipping_company_id: Optional[str]
    tracking_number: Optional[str]


@dataclass(frozen=True)
class ConfirmArrival:
    action: ClassVar[OrderAction] = OrderAction.CONFIRM_ARRIVAL
    shipping_company_id: Optional[str]
    tracking_number: Optional[str] = None


@dataclass(frozen=True)
class MarkDelivered:
    action: ClassVar[OrderAction] = OrderAction.MARK_DELIVERED
    bulk: bool = False


@dataclass(frozen=True)
class CancelOrder:
    action: ClassVar[OrderAction] = OrderAction.CANCEL


@dataclass(frozen=True)
class EditOrderDetails:
    action: ClassVar[OrderAction] = OrderAction.EDIT_DETAILS
    customer: Optional[Customer] = None
    story: Optional[Story] = None
    price: Optional[float] = None


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class TransitionEngine:
    def __init__(self, store: Store, files: Optional[StorageProvider] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 domestic_countries: Iterable[str] = policy.DEFAULT_DOMESTIC_COUNTRIES):
        self.store = store
        self.files = files
        self.clock = clock or utcnow
        self.domestic_countries = tuple(domestic_countries)
        self._handlers = {
            AssignDesigner: self._assign_designer,
            CompleteDesign: self._complete_design,
            CompletePrinting: self._complete_printing,
            ConfirmArrival: self._confirm_arrival,
            MarkDelivered: self._mark_delivered,
            CancelOrder: self._cancel,
            EditOrderDetails: self._edit_details,
        }

    def apply(self, order: Order, command, actor: Actor) -> Order:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise ValidationError(f'unsupported command {type(command).__name__}', field='action')
        policy.assert_can_perform(actor, order, command.action)
        policy.assert_source_status(order, command.action)
        updated = handler(order, command, actor, self.clock())
        logger.info('order %s: %s by %s (%s) -> %s', order.id, command.action.value, actor.id,
                    actor.role.value, updated.status.value)
        return updated

    # --- helpers --- #

    def _entry(self, actor: Actor, action: str, now: datetime, file: Optional[FileRef] = None) -> ActivityLogEntry:
        return ActivityLogEntry(user=actor.name, role=actor.role, action=action, timestamp=now, file=file)

    def _lookup(self, entity: str, id: str, label: str):
        return fetch(self.store, entity, id, label)

    def _move(self, order: Order, target: OrderStatus, entry: ActivityLogEntry, **changes) -> Order:
        ORDER_FSM.assert_can_transition(order.status, target)
        return order.with_log(entry, status=target, **changes)

    def _upload(self, order: Order, upload: Upload, now: datetime) -> FileRef:
        if self.files is None:
            raise UploadFailure('No file storage configured')
        return self.files.upload(upload.stream, destination_for(order.id, upload.filename, now), upload.filename)

    def discard(self, stored: Iterable[FileRef]):
        """Best-effort removal of files written by a transition that did not complete."""
        paths = [f.path for f in stored if f is not None and f.path]
        if not paths or self.files is None:
            return
        try:
            self.files.delete(paths)
        except UploadFailure as e:
            logger.warning('could not remove orphaned uploads %s: %s', paths, e)

    # --- handlers --- #

    def _assign_designer(self, order: Order, cmd: AssignDesigner, actor: Actor, now: datetime) -> Order:
        if _blank(cmd.designer_id):
            raise MissingArtifact('designer_id')
        designer = self._lookup(USERS, cmd.designer_id, 'User')
        if designer.role != UserRole.DESIGNER:
            raise ValidationError(f'{designer.name} is not a Designer', field='designer_id', value=cmd.designer_id)
        prefix = 'Bulk assigned' if cmd.bulk else 'Assigned'
        entry = self._entry(actor, f'{prefix} to Designer {designer.name}', now)
        return self._move(order, OrderStatus.DESIGNING, entry, assigned_to_designer=designer.id)

    def _complete_design(self, order: Order, cmd: CompleteDesign, actor: Actor, now: datetime) -> Order:
        if _blank(cmd.printer_id):
            raise MissingArtifact('printer_id')
        if cmd.cover_image is None:
            raise MissingArtifact('cover_image')
        if cmd.final_pdf is None:
            raise MissingArtifact('final_pdf')
        printer = self._lookup(PRINTERS, cmd.printer_id, 'Printer')
        ORDER_FSM.assert_can_transition(order.status, OrderStatus.PRINTING)
        cover = self._upload(order, cmd.cover_image, now)
        try:
            pdf = self._upload(order, cmd.final_pdf, now)
        except UploadFailure:
            self.discard([cover])
            raise
        entry = self._entry(actor, f'Completed Design & Assigned to {printer.name}', now, file=pdf)
        return self._move(order, OrderStatus.PRINTING, entry,
                          cover_image=cover, final_pdf=pdf, assigned_to_printer=printer.id)

    def _complete_printing(self, order: Order, cmd: CompletePrinting, actor: Actor, now: datetime) -> Order:
        if _blank(cmd.shipping_company_id):
            raise MissingArtifact('shipping_company_id')
        if _blank(cmd.tracking_number):
            raise MissingArtifact('tracking_number')
        company = self._lookup(SHIPPING_COMPANIES, cmd.shipping_company_id, 'ShippingCompany')
        info = ShippingInfo(company=company.name, tracking_number=cmd.tracking_number.strip(), date=now)
        if policy.is_domestic(order.customer.country, self.domestic_countries):
            entry = self._entry(actor, f'Printing Complete. Shipped domestically via {company.name}', now)
            return self._move(order, OrderStatus.DOMESTIC_SHIPPING, entry, domestic_shipping_info=info)
        entry = self._entry(actor, f'Printing Complete. Shipped via {company.name}', now)
        return self._move(order, OrderStatus.INTERNATIONAL_SHIPPING, entry, international_shipping_info=info)

    def _confirm_arrival(self, order: Order, cmd: ConfirmArrival, actor: Actor, now: datetime) -> Order:
        if _blank(cmd.shipping_company_id):
            raise MissingArtifact('shipping_company_id')
        company = self._lookup(SHIPPING_COMPANIES, cmd.shipping_company_id, 'ShippingCompany')
        tracking = cmd.tracking_number.strip() if not _blank(cmd.tracking_number) else f'DOM-{order.id}'
        info = ShippingInfo(company=company.name, tracking_number=tracking, date=now)
        entry = self._entry(actor, f'Arrived in country. Forwarded to {company.name}', now)
        return self._move(order, OrderStatus.DOMESTIC_SHIPPING, entry, domestic_shipping_info=info)

    def _mark_delivered(self, order: Order, cmd: MarkDelivered, actor: Actor, now: datetime) -> Order:
        entry = self._entry(actor, 'Bulk marked as Delivered' if cmd.bulk else 'Marked as Delivered', now)
        return self._move(order, OrderStatus.DELIVERED, entry, delivery_date=now)

    def _cancel(self, order: Order, cmd: CancelOrder, actor: Actor, now: datetime) -> Order:
        return self._move(order, OrderStatus.CANCELLED, self._entry(actor, 'Order Cancelled', now))

    def _edit_details(self, order: Order, cmd: EditOrderDetails, actor: Actor, now: datetime) -> Order:
        changes = {}
        if cmd.customer is not None:
            changes['customer'] = cmd.customer
        if cmd.story is not None:
            changes['story'] = cmd.story
        if cmd.price is not None:
            changes['price'] = cmd.price
        if not changes:
            raise ValidationError('customer, story or price is required', field='customer')
        return order.with_log(self._entry(actor, 'Order details updated', now), **changes)


__all__ = [
    'TransitionEngine', 'AssignDesigner', 'CompleteDesign', 'CompletePrinting', 'ConfirmArrival',
    'MarkDelivered', 'CancelOrder', 'EditOrderDetails',
]
