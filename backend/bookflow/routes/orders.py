from __future__ import annotations
from flask import Blueprint, request, g
from bookflow import get_store, get_storage, domestic_countries
from bookflow.decorators.auth import require_roles
from bookflow.decorators.audit import audit_log
from bookflow.domain import OrderStatus, UserRole
from bookflow.exceptions import ValidationError
from bookflow.services.bulk import BulkCoordinator, toggle_selection
from bookflow.services.orders import OrderService
from bookflow.services.serialization import (
    customer_from_dict, customer_to_dict, order_to_dict, story_from_dict, story_to_dict,
)
from bookflow.services.transitions import (
    AssignDesigner, CancelOrder, CompleteDesign, CompletePrinting, ConfirmArrival, EditOrderDetails, MarkDelivered,
)
from bookflow.storage.provider import Upload
from bookflow.utils.listing import apply_pagination, compute_etag, handle_conditional, make_cached_list_response
from bookflow.utils.validation import json_field, optional_str, validate_choice

orders_bp = Blueprint('orders', __name__)

STATUS_VALUES = [s.value for s in OrderStatus]


def _service() -> OrderService:
    return OrderService(get_store(), get_storage(), domestic_countries=domestic_countries())


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _upload(name: str):
    f = request.files.get(name)
    if f is None or not f.filename:
        return None
    return Upload(f.stream, f.filename, f.mimetype)


def _uploads(name: str):
    return [Upload(f.stream, f.filename, f.mimetype) for f in request.files.getlist(name) if f.filename]


def _order_ids(data) -> list:
    ids = data.get('order_ids')
    if not isinstance(ids, list):
        raise ValidationError('order_ids must be a list', field='order_ids')
    return [str(i) for i in ids]


@orders_bp.get('')
@require_roles()
def list_orders():
    svc = _service()
    status = request.args.get('status')
    if status:
        validate_choice(status, STATUS_VALUES, 'status')
    orders = svc.list_orders(g.actor, request.args.get('q'), status or None)
    page, total, limit, offset = apply_pagination(orders)
    latest_ts = svc.store.latest_update()
    etag = compute_etag([(o.id, o.status.value, len(o.activity_log)) for o in page], total, limit, offset, latest_ts)
    cond = handle_conditional(etag)
    if cond:
        return cond
    return make_cached_list_response([order_to_dict(o) for o in page], etag, total, limit, offset, latest_ts)


@orders_bp.post('')
@require_roles()
def create_order():
    data = _payload()
    order = _service().create_order(
        g.actor,
        customer_from_dict(json_field(data.get('customer'), 'customer')),
        story_from_dict(json_field(data.get('story'), 'story')),
        data.get('price'),
        _uploads('reference_images'),
    )
    return order_to_dict(order), 201


@orders_bp.get('/<order_id>')
@require_roles()
def get_order(order_id: str):
    return order_to_dict(_service().get_order(order_id, g.actor))


@orders_bp.post('/<order_id>/assign-designer')
@require_roles()
def assign_designer(order_id: str):
    data = _payload()
    order = _service().perform(order_id, AssignDesigner(optional_str(data, 'designer_id')), g.actor)
    return order_to_dict(order)


@orders_bp.post('/<order_id>/complete-design')
@require_roles()
def complete_design(order_id: str):
    cmd = CompleteDesign(
        printer_id=optional_str(request.form, 'printer_id'),
        cover_image=_upload('cover_image'),
        final_pdf=_upload('final_pdf'),
    )
    return order_to_dict(_service().perform(order_id, cmd, g.actor))


@orders_bp.post('/<order_id>/complete-printing')
@require_roles()
def complete_printing(order_id: str):
    data = _payload()
    cmd = CompletePrinting(optional_str(data, 'shipping_company_id'), optional_str(data, 'tracking_number'))
    return order_to_dict(_service().perform(order_id, cmd, g.actor))


@orders_bp.post('/<order_id>/confirm-arrival')
@require_roles()
def confirm_arrival(order_id: str):
    data = _payload()
    cmd = ConfirmArrival(optional_str(data, 'shipping_company_id'), optional_str(data, 'tracking_number'))
    return order_to_dict(_service().perform(order_id, cmd, g.actor))


@orders_bp.post('/<order_id>/deliver')
@require_roles()
def deliver(order_id: str):
    return order_to_dict(_service().perform(order_id, MarkDelivered(), g.actor))


@orders_bp.post('/<order_id>/cancel')
@require_roles()
def cancel(order_id: str):
    return order_to_dict(_service().perform(order_id, CancelOrder(), g.actor))


@orders_bp.put('/<order_id>')
@require_roles()
def edit_order(order_id: str):
    data = request.get_json(silent=True) or {}
    svc = _service()
    current = svc.get_order(order_id, g.actor)
    customer = story = None
    if data.get('customer') is not None:
        if not isinstance(data['customer'], dict):
            raise ValidationError('customer must be an object', field='customer')
        customer = customer_from_dict({**customer_to_dict(current.customer), **data['customer']})
    if data.get('story') is not None:
        if not isinstance(data['story'], dict):
            raise ValidationError('story must be an object', field='story')
        story = story_from_dict({**story_to_dict(current.story), **data['story']})
    cmd = EditOrderDetails(customer=customer, story=story, price=data.get('price'))
    return order_to_dict(svc.perform(order_id, cmd, g.actor))


@orders_bp.delete('/<order_id>')
@require_roles()
@audit_log('ORDER.DELETE', entity='Order', entity_id_key='id', meta_keys=['status', 'customer', 'created_by'])
def delete_order(order_id: str):
    order = _service().delete_order(order_id, g.actor)
    return {'id': order.id, 'status': order.status.value, 'customer': order.customer.name,
            'created_by': order.created_by, 'deleted': True}


# ---------------- Bulk ---------------- #

def _bulk_json(result):
    body = {
        'applied': [order_to_dict(o) for o in result.applied],
        'failed': [{'order_id': f.order_id, 'code': f.error_code, 'detail': f.detail} for f in result.failed],
    }
    if result.signal:
        body.update({'accepted': False, 'signal': result.signal})
    return body


@orders_bp.post('/bulk/assign-designer')
@require_roles(UserRole.ADMIN)
def bulk_assign_designer():
    data = request.get_json(silent=True) or {}
    result = BulkCoordinator(_service()).assign_designer(_order_ids(data), optional_str(data, 'designer_id'), g.actor)
    return _bulk_json(result)


@orders_bp.post('/bulk/deliver')
@require_roles(UserRole.ADMIN)
def bulk_deliver():
    data = request.get_json(silent=True) or {}
    return _bulk_json(BulkCoordinator(_service()).mark_delivered(_order_ids(data), g.actor))


@orders_bp.post('/selection')
@require_roles(UserRole.ADMIN)
def selection():
    """Check whether ``add`` may join the current selection ``order_ids``."""
    data = request.get_json(silent=True) or {}
    svc = _service()
    selected = [svc.get_order(i) for i in _order_ids(data)]
    add_id = optional_str(data, 'add')
    if not add_id:
        raise ValidationError('add required', field='add')
    result = toggle_selection(selected, svc.get_order(add_id))
    body = {
        'accepted': result.accepted,
        'order_ids': [o.id for o in result.selection],
        'status': result.status.value if result.status else None,
    }
    if result.signal:
        body['signal'] = result.signal
    return body
