"""Domain snapshots for the order workflow.

Entities here are frozen dataclasses: a transition never edits an Order in place,
it builds a new snapshot with ``dataclasses.replace``. Construction validates field
presence and simple ranges and raises ``ValidationError`` naming the field.
"""
from __future__ import annotations
import uuid
from dataclasses import dataclass, fields, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from bookflow.exceptions import ValidationError


class UserRole(str, Enum):
    ADMIN = 'Admin'
    SALES = 'Sales'
    DESIGNER = 'Designer'
    PRINTER = 'Printer'
    SHIPPING = 'Shipping'


class OrderStatus(str, Enum):
    NEW = 'New Order'
    DESIGNING = 'Designing'
    PRINTING = 'Printing'
    INTERNATIONAL_SHIPPING = 'International Shipping'
    DOMESTIC_SHIPPING = 'Domestic Shipping'
    DELIVERED = 'Delivered'
    CANCELLED = 'Cancelled'


TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class StoryType(str, Enum):
    HARDCOVER = 'Hardcover'
    PAPERBACK = 'Paperback'
    DIGITAL = 'Digital'


class ShippingType(str, Enum):
    INTERNATIONAL = 'International'
    DOMESTIC = 'Domestic'


class OrderAction(str, Enum):
    CREATE = 'create'
    ASSIGN_DESIGNER = 'assign_designer'
    COMPLETE_DESIGN = 'complete_design'
    COMPLETE_PRINTING = 'complete_printing'
    CONFIRM_ARRIVAL = 'confirm_arrival'
    MARK_DELIVERED = 'mark_delivered'
    CANCEL = 'cancel'
    EDIT_DETAILS = 'edit_details'
    DELETE = 'delete'


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _require(obj, *names: str):
    for name in names:
        value = getattr(obj, name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f'{name} is required', field=name)


def _coerce_enum(obj, name: str, enum_cls):
    value = getattr(obj, name)
    if isinstance(value, enum_cls):
        return
    try:
        object.__setattr__(obj, name, enum_cls(value))
    except ValueError:
        raise ValidationError(f'{name} invalid', field=name, value=value)


def _coerce_number(obj, name: str, *, minimum: Optional[float] = None, integer: bool = False,
                   optional: bool = False):
    value = getattr(obj, name)
    if value is None:
        if optional:
            return
        raise ValidationError(f'{name} is required', field=name)
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be a number', field=name, value=value)
    try:
        number = int(value) if integer else float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{name} must be a number', field=name, value=value)
    if integer and number != float(value):
        raise ValidationError(f'{name} must be a whole number', field=name, value=value)
    if minimum is not None and number < minimum:
        raise ValidationError(f'{name} must be >= {minimum:g}', field=name, value=value)
    object.__setattr__(obj, name, number)


def _coerce_datetime(obj, name: str, optional: bool = False):
    value = getattr(obj, name)
    if value is None:
        if optional:
            return
        raise ValidationError(f'{name} is required', field=name)
    if not isinstance(value, datetime):
        raise ValidationError(f'{name} must be a datetime', field=name, value=value)
    if value.tzinfo is None:
        object.__setattr__(obj, name, value.replace(tzinfo=timezone.utc))


@dataclass(frozen=True)
class FileRef:
    """A stored file: display name, public url, and the storage path used for removal."""
    name: str
    url: str
    path: Optional[str] = None

    def __post_init__(self):
        _require(self, 'name', 'url')


@dataclass(frozen=True)
class Customer:
    name: str
    address: str
    country: str
    phone: str
    alt_phone: Optional[str] = None

    def __post_init__(self):
        _require(self, 'name', 'address', 'country', 'phone')


@dataclass(frozen=True)
class Story:
    details: str
    type: StoryType
    copies: int = 1
    owner_name: Optional[str] = None

    def __post_init__(self):
        _require(self, 'details', 'type')
        _coerce_enum(self, 'type', StoryType)
        _coerce_number(self, 'copies', minimum=1, integer=True)


@dataclass(frozen=True)
class ShippingInfo:
    company: str
    tracking_number: str
    date: datetime

    def __post_init__(self):
        _require(self, 'company', 'tracking_number')
        _coerce_datetime(self, 'date')


@dataclass(frozen=True)
class ActivityLogEntry:
    user: str
    role: UserRole
    action: str
    timestamp: datetime
    details: Optional[str] = None
    file: Optional[FileRef] = None

    def __post_init__(self):
        _require(self, 'user', 'action')
        _coerce_enum(self, 'role', UserRole)
        _coerce_datetime(self, 'timestamp')


@dataclass(frozen=True)
class Order:
    id: str
    status: OrderStatus
    customer: Customer
    story: Story
    price: float
    created_at: datetime
    created_by: str
    reference_images: Tuple[FileRef, ...] = ()
    final_pdf: Optional[FileRef] = None
    cover_image: Optional[FileRef] = None
    assigned_to_designer: Optional[str] = None
    assigned_to_printer: Optional[str] = None
    international_shipping_info: Optional[ShippingInfo] = None
    domestic_shipping_info: Optional[ShippingInfo] = None
    delivery_date: Optional[datetime] = None
    activity_log: Tuple[ActivityLogEntry, ...] = ()

    def __post_init__(self):
        _require(self, 'id', 'customer', 'story', 'created_by')
        _coerce_enum(self, 'status', OrderStatus)
        _coerce_number(self, 'price', minimum=0)
        _coerce_datetime(self, 'created_at')
        _coerce_datetime(self, 'delivery_date', optional=True)
        object.__setattr__(self, 'reference_images', tuple(self.reference_images))
        object.__setattr__(self, 'activity_log', tuple(self.activity_log))

    def with_log(self, entry: ActivityLogEntry, **changes) -> 'Order':
        """Return a new snapshot with ``changes`` applied and ``entry`` appended."""
        return replace(self, activity_log=self.activity_log + (entry,), **changes)

    def stored_files(self) -> Tuple[FileRef, ...]:
        files = list(self.reference_images)
        files.extend(f for f in (self.cover_image, self.final_pdf) if f is not None)
        return tuple(files)


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    role: UserRole
    phone: str = ''
    hourly_rate: Optional[float] = None
    story_rate: Optional[float] = None

    def __post_init__(self):
        _require(self, 'id', 'name', 'email')
        _coerce_enum(self, 'role', UserRole)
        _coerce_number(self, 'hourly_rate', minimum=0, optional=True)
        _coerce_number(self, 'story_rate', minimum=0, optional=True)


@dataclass(frozen=True)
class Printer:
    id: str
    name: str
    story_rate: Optional[float] = None

    def __post_init__(self):
        _require(self, 'id', 'name')
        _coerce_number(self, 'story_rate', minimum=0, optional=True)


@dataclass(frozen=True)
class ShippingCompany:
    id: str
    name: str
    type: ShippingType

    def __post_init__(self):
        _require(self, 'id', 'name')
        _coerce_enum(self, 'type', ShippingType)


# --- Ledger rows (append-only) --- #

@dataclass(frozen=True)
class HoursLog:
    id: str
    user_id: str
    hours: float
    rate: float
    date: datetime

    def __post_init__(self):
        _require(self, 'id', 'user_id')
        _coerce_number(self, 'hours', minimum=0)
        _coerce_number(self, 'rate', minimum=0)
        _coerce_datetime(self, 'date')


@dataclass(frozen=True)
class Bonus:
    id: str
    user_id: str
    amount: float
    date: datetime
    notes: Optional[str] = None

    def __post_init__(self):
        _require(self, 'id', 'user_id')
        _coerce_number(self, 'amount', minimum=0)
        _coerce_datetime(self, 'date')


@dataclass(frozen=True)
class Payment:
    """Paid to exactly one of a user or a printer."""
    id: str
    amount: float
    date: datetime
    user_id: Optional[str] = None
    printer_id: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self):
        _require(self, 'id')
        if bool(self.user_id) == bool(self.printer_id):
            raise ValidationError('exactly one of user_id or printer_id is required', field='user_id')
        _coerce_number(self, 'amount', minimum=0)
        _coerce_datetime(self, 'date')


@dataclass(frozen=True)
class Actor:
    """The caller as supplied by the identity collaborator."""
    id: str
    name: str
    role: UserRole

    def __post_init__(self):
        _require(self, 'id', 'name')
        _coerce_enum(self, 'role', UserRole)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def changed_fields(before, after) -> Dict[str, Any]:
    """Field-name -> new value for every dataclass field that differs."""
    return {
        f.name: getattr(after, f.name)
        for f in fields(after)
        if getattr(before, f.name) != getattr(after, f.name)
    }


__all__ = [
    'UserRole', 'OrderStatus', 'TERMINAL_STATUSES', 'StoryType', 'ShippingType', 'OrderAction',
    'FileRef', 'Customer', 'Story', 'ShippingInfo', 'ActivityLogEntry', 'Order', 'User', 'Printer',
    'ShippingCompany', 'HoursLog', 'Bonus', 'Payment', 'Actor', 'utcnow', 'new_id', 'changed_fields',
]
