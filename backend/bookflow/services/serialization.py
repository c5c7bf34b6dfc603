from __future__ import annotations
"""Plain-dict conversion for domain snapshots.

Used in two places: the store's JSON columns and HTTP response bodies. Dates are
ISO-8601 strings with a trailing ``Z``; enums are their string values.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from bookflow.domain import (
    ActivityLogEntry, Actor, Bonus, Customer, FileRef, HoursLog, Order, Payment, Printer,
    ShippingCompany, ShippingInfo, Story, User,
)
from bookflow.exceptions import ValidationError


def iso(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z')


def parse_datetime(raw: Any, field_name: str = 'date') -> Optional[datetime]:
    if raw is None or raw == '':
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        try:
            dt = datetime.fromisoformat(str(raw).replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f'{field_name} must be an ISO-8601 datetime', field=field_name, value=raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _enum_value(value):
    return getattr(value, 'value', value)


# --- value objects --- #

def file_to_dict(f: Optional[FileRef]) -> Optional[Dict[str, Any]]:
    if f is None:
        return None
    return {'name': f.name, 'url': f.url, 'path': f.path}


def file_from_dict(data: Optional[Mapping[str, Any]]) -> Optional[FileRef]:
    if not data:
        return None
    return FileRef(name=data.get('name'), url=data.get('url'), path=data.get('path'))


def customer_to_dict(c: Customer) -> Dict[str, Any]:
    return {
        'name': c.name,
        'address': c.address,
        'country': c.country,
        'phone': c.phone,
        'alt_phone': c.alt_phone,
    }


def customer_from_dict(data: Optional[Mapping[str, Any]]) -> Customer:
    if not isinstance(data, Mapping):
        raise ValidationError('customer is required', field='customer')
    return Customer(
        name=data.get('name'),
        address=data.get('address'),
        country=data.get('country'),
        phone=data.get('phone'),
        alt_phone=data.get('alt_phone') or None,
    )


def story_to_dict(s: Story) -> Dict[str, Any]:
    return {
        'details': s.details,
        'type': _enum_value(s.type),
        'copies': s.copies,
        'owner_name': s.owner_name,
    }


def story_from_dict(data: Optional[Mapping[str, Any]]) -> Story:
    if not isinstance(data, Mapping):
        raise ValidationError('story is required', field='story')
    return Story(
        details=data.get('details'),
        type=data.get('type'),
        copies=data.get('copies', 1),
        owner_name=data.get('owner_name') or None,
    )


def shipping_to_dict(info: Optional[ShippingInfo]) -> Optional[Dict[str, Any]]:
    if info is None:
        return None
    return {'company': info.company, 'tracking_number': info.tracking_number, 'date': iso(info.date)}


def shipping_from_dict(data: Optional[Mapping[str, Any]]) -> Optional[ShippingInfo]:
    if not data:
        return None
    return ShippingInfo(
        company=data.get('company'),
        tracking_number=data.get('tracking_number'),
        date=parse_datetime(data.get('date')),
    )


def log_entry_to_dict(e: ActivityLogEntry) -> Dict[str, Any]:
    out = {
        'user': e.user,
        'role': _enum_value(e.role),
        'action': e.action,
        'timestamp': iso(e.timestamp),
    }
    if e.details:
        out['details'] = e.details
    if e.file is not None:
        out['file'] = file_to_dict(e.file)
    return out


def log_entry_from_dict(data: Mapping[str, Any]) -> ActivityLogEntry:
    return ActivityLogEntry(
        user=data.get('user'),
        role=data.get('role'),
        action=data.get('action'),
        timestamp=parse_datetime(data.get('timestamp'), 'timestamp'),
        details=data.get('details'),
        file=file_from_dict(data.get('file')),
    )


# --- entities --- #

def order_to_dict(o: Order) -> Dict[str, Any]:
    return {
        'id': o.id,
        'status': _enum_value(o.status),
        'customer': customer_to_dict(o.customer),
        'story': story_to_dict(o.story),
        'price': o.price,
        'created_at': iso(o.created_at),
        'created_by': o.created_by,
        'reference_images': [file_to_dict(f) for f in o.reference_images],
        'final_pdf': file_to_dict(o.final_pdf),
        'cover_image': file_to_dict(o.cover_image),
        'assigned_to_designer': o.assigned_to_designer,
        'assigned_to_printer': o.assigned_to_printer,
        'international_shipping_info': shipping_to_dict(o.international_shipping_info),
        'domestic_shipping_info': shipping_to_dict(o.domestic_shipping_info),
        'delivery_date': iso(o.delivery_date),
        'activity_log': [log_entry_to_dict(e) for e in o.activity_log],
    }


def order_from_dict(data: Mapping[str, Any]) -> Order:
    return Order(
        id=data.get('id'),
        status=data.get('status'),
        customer=customer_from_dict(data.get('customer')),
        story=story_from_dict(data.get('story')),
        price=data.get('price'),
        created_at=parse_datetime(data.get('created_at'), 'created_at'),
        created_by=data.get('created_by'),
        reference_images=tuple(file_from_dict(f) for f in data.get('reference_images') or ()),
        final_pdf=file_from_dict(data.get('final_pdf')),
        cover_image=file_from_dict(data.get('cover_image')),
        assigned_to_designer=data.get('assigned_to_designer'),
        assigned_to_printer=data.get('assigned_to_printer'),
        international_shipping_info=shipping_from_dict(data.get('international_shipping_info')),
        domestic_shipping_info=shipping_from_dict(data.get('domestic_shipping_info')),
        delivery_date=parse_datetime(data.get('delivery_date'), 'delivery_date'),
        activity_log=tuple(log_entry_from_dict(e) for e in data.get('activity_log') or ()),
    )


def user_to_dict(u: User) -> Dict[str, Any]:
    return {
        'id': u.id,
        'name': u.name,
        'email': u.email,
        'phone': u.phone,
        'role': _enum_value(u.role),
        'hourly_rate': u.hourly_rate,
        'story_rate': u.story_rate,
    }


def printer_to_dict(p: Printer) -> Dict[str, Any]:
    return {'id': p.id, 'name': p.name, 'story_rate': p.story_rate}


def company_to_dict(c: ShippingCompany) -> Dict[str, Any]:
    return {'id': c.id, 'name': c.name, 'type': _enum_value(c.type)}


def hours_to_dict(h: HoursLog) -> Dict[str, Any]:
    return {'id': h.id, 'user_id': h.user_id, 'hours': h.hours, 'rate': h.rate, 'date': iso(h.date)}


def bonus_to_dict(b: Bonus) -> Dict[str, Any]:
    return {'id': b.id, 'user_id': b.user_id, 'amount': b.amount, 'date': iso(b.date), 'notes': b.notes}


def payment_to_dict(p: Payment) -> Dict[str, Any]:
    return {
        'id': p.id,
        'user_id': p.user_id,
        'printer_id': p.printer_id,
        'amount': p.amount,
        'date': iso(p.date),
        'notes': p.notes,
    }


def actor_to_dict(a: Actor) -> Dict[str, Any]:
    return {'id': a.id, 'name': a.name, 'role': _enum_value(a.role)}


__all__ = [
    'iso', 'parse_datetime', 'file_to_dict', 'file_from_dict', 'customer_to_dict', 'customer_from_dict',
    'story_to_dict', 'story_from_dict', 'shipping_to_dict', 'shipping_from_dict', 'log_entry_to_dict',
    'log_entry_from_dict', 'order_to_dict', 'order_from_dict', 'user_to_dict', 'printer_to_dict',
    'company_to_dict', 'hours_to_dict', 'bonus_to_dict', 'payment_to_dict', 'actor_to_dict',
]
