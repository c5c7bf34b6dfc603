from __future__ import annotations
"""Order application service: loads snapshots, runs the engine, persists patches."""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from bookflow.domain import (
    ActivityLogEntry, Actor, Customer, Order, OrderAction, OrderStatus, Story, changed_fields, new_id, utcnow,
)
from bookflow.exceptions import PermissionDenied, PersistenceFailure, UploadFailure
from bookflow.services import policy
from bookflow.services.store import ORDERS, Store, fetch
from bookflow.services.transitions import TransitionEngine
from bookflow.services.view import filter_orders
from bookflow.storage.provider import StorageProvider, Upload, destination_for

logger = logging.getLogger(__name__)


class OrderService:
    def __init__(self, store: Store, files: Optional[StorageProvider] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 domestic_countries: Iterable[str] = policy.DEFAULT_DOMESTIC_COUNTRIES):
        self.store = store
        self.files = files
        self.clock = clock or utcnow
        self.engine = TransitionEngine(store, files, self.clock, domestic_countries)

    def get_order(self, order_id: str, actor: Optional[Actor] = None) -> Order:
        order = fetch(self.store, ORDERS, order_id, 'Order')
        if actor is not None and not policy.is_visible(actor, order):
            raise PermissionDenied(f'Order {order_id} is not visible to {actor.role.value}',
                                   role=actor.role.value, action='read')
        return order

    def list_orders(self, actor: Actor, query: Optional[str] = None,
                    status: Optional[OrderStatus] = None) -> List[Order]:
        return filter_orders(actor.role, actor.id, self.store.list(ORDERS), query, status)

    def create_order(self, actor: Actor, customer: Customer, story: Story, price: float,
                     reference_images: Sequence[Upload] = ()) -> Order:
        policy.assert_can_create(actor)
        now = self.clock()
        entry = ActivityLogEntry(user=actor.name, role=actor.role, action='Created Order', timestamp=now)
        # validate before anything is uploaded
        order = Order(
            id=new_id(),
            status=OrderStatus.NEW,
            customer=customer,
            story=story,
            price=price,
            created_at=now,
            created_by=actor.id,
            activity_log=(entry,),
        )
        stored = []
        try:
            for upload in reference_images:
                if self.files is None:
                    raise UploadFailure('No file storage configured')
                path = destination_for(order.id, upload.filename, now)
                stored.append(self.files.upload(upload.stream, path, upload.filename))
            order = replace(order, reference_images=tuple(stored))
            self.store.insert(ORDERS, order)
        except (UploadFailure, PersistenceFailure):
            self.engine.discard(stored)
            raise
        logger.info('order %s created by %s with %d reference image(s)', order.id, actor.id, len(stored))
        return order

    def perform(self, order_id: str, command, actor: Actor) -> Order:
        """Run one transition and persist exactly the fields it changed."""
        order = self.get_order(order_id)
        updated = self.engine.apply(order, command, actor)
        patch = changed_fields(order, updated)
        try:
            return self.store.update(ORDERS, order.id, patch)
        except PersistenceFailure:
            self.engine.discard(set(updated.stored_files()) - set(order.stored_files()))
            raise

    def delete_order(self, order_id: str, actor: Actor) -> Order:
        """Hard delete. The record is gone afterwards, so nothing is appended to its log."""
        order = self.get_order(order_id)
        policy.assert_can_perform(actor, order, OrderAction.DELETE)
        self.store.delete(ORDERS, order.id)
        paths = [f.path for f in order.stored_files() if f.path]
        if paths and self.files is not None:
            try:
                self.files.delete(paths)
            except UploadFailure as e:
                logger.warning('order %s deleted but its files were not removed: %s', order.id, e)
        logger.info('order %s (%s) deleted by %s', order.id, order.status.value, actor.id)
        return order


__all__ = ['OrderService']
