from __future__ import annotations
"""Accounting aggregator: payroll, story earnings and balances.

All calculators are pure reads over the store; calling them twice on an
unchanged ledger gives identical results. Balances may be negative (overpaid).

Payees are an explicit union, ``UserPayee | PrinterPayee``; ``calculate_earnings``
dispatches on the variant, never on the shape of the record.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional, Union

from bookflow.constants.permissions import DESIGN_DONE_STATUSES, PRINT_DONE_STATUSES
from bookflow.domain import UserRole
from bookflow.exceptions import ValidationError
from bookflow.services.store import BONUSES, HOURS_LOGS, ORDERS, PAYMENTS, PRINTERS, USERS, Store, fetch


@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)``; either bound may be open."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start and self.end and self.end <= self.start:
            raise ValidationError('end must be after start', field='end')

    @classmethod
    def month(cls, year: int, month: int) -> 'DateWindow':
        if not 1 <= month <= 12:
            raise ValidationError('month must be 1..12', field='month', value=month)
        start = datetime(year, month, 1, tzinfo=timezone.utc)
        end = datetime(year + (month == 12), month % 12 + 1, 1, tzinfo=timezone.utc)
        return cls(start, end)

    def contains(self, when: datetime) -> bool:
        if when.tzinfo is None:
            when = when.replace(tzinfo=timezone.utc)
        if self.start is not None and when < self.start:
            return False
        if self.end is not None and when >= self.end:
            return False
        return True


def _within(rows: Iterable, window: Optional[DateWindow], attr: str = 'date'):
    if window is None:
        return list(rows)
    return [r for r in rows if window.contains(getattr(r, attr))]


@dataclass(frozen=True)
class UserPayee:
    user_id: str


@dataclass(frozen=True)
class PrinterPayee:
    printer_id: str


Payee = Union[UserPayee, PrinterPayee]


@dataclass(frozen=True)
class SalesPayroll:
    user_id: str
    total_hours: float
    earnings_from_hours: float
    total_bonuses: float
    total_earnings: float
    total_paid: float
    balance: float


@dataclass(frozen=True)
class StoryEarnings:
    payee_id: str
    kind: str
    completed_count: int
    rate: float
    earnings: float
    total_paid: float
    balance: float


def total_paid(store: Store, window: Optional[DateWindow] = None, *, user_id: Optional[str] = None,
               printer_id: Optional[str] = None) -> float:
    if user_id is not None:
        rows = store.list(PAYMENTS, user_id=user_id)
    else:
        rows = store.list(PAYMENTS, printer_id=printer_id)
    return sum(p.amount for p in _within(rows, window))


def calculate_sales_payroll(store: Store, user_id: str, window: Optional[DateWindow] = None) -> SalesPayroll:
    hours = _within(store.list(HOURS_LOGS, user_id=user_id), window)
    bonuses = _within(store.list(BONUSES, user_id=user_id), window)
    total_hours = sum(h.hours for h in hours)
    # rate is the one captured on each row, not the user's current rate
    from_hours = sum(h.hours * h.rate for h in hours)
    total_bonuses = sum(b.amount for b in bonuses)
    earned = from_hours + total_bonuses
    paid = total_paid(store, window, user_id=user_id)
    return SalesPayroll(
        user_id=user_id,
        total_hours=total_hours,
        earnings_from_hours=from_hours,
        total_bonuses=total_bonuses,
        total_earnings=earned,
        total_paid=paid,
        balance=earned - paid,
    )


def _story_earnings(payee_id: str, kind: str, count: int, own_rate: Optional[float], story_price: float,
                    paid: float) -> StoryEarnings:
    rate = own_rate if own_rate is not None else story_price
    earnings = count * rate
    return StoryEarnings(payee_id, kind, count, rate, earnings, paid, earnings - paid)


def calculate_designer_earnings(store: Store, user_id: str, story_price: float,
                                window: Optional[DateWindow] = None) -> StoryEarnings:
    designer = fetch(store, USERS, user_id, 'User')
    orders = _within(store.list(ORDERS, assigned_to_designer=user_id), window, 'created_at')
    count = sum(1 for o in orders if o.status in DESIGN_DONE_STATUSES)
    return _story_earnings(user_id, 'designer', count, designer.story_rate, story_price,
                           total_paid(store, window, user_id=user_id))


def calculate_printer_earnings(store: Store, printer_id: str, story_price: float,
                               window: Optional[DateWindow] = None) -> StoryEarnings:
    printer = fetch(store, PRINTERS, printer_id, 'Printer')
    orders = _within(store.list(ORDERS, assigned_to_printer=printer_id), window, 'created_at')
    count = sum(1 for o in orders if o.status in PRINT_DONE_STATUSES)
    return _story_earnings(printer_id, 'printer', count, printer.story_rate, story_price,
                           total_paid(store, window, printer_id=printer_id))


def calculate_earnings(store: Store, payee: Payee, story_price: float,
                       window: Optional[DateWindow] = None) -> Union[SalesPayroll, StoryEarnings]:
    if isinstance(payee, PrinterPayee):
        return calculate_printer_earnings(store, payee.printer_id, story_price, window)
    if isinstance(payee, UserPayee):
        user = fetch(store, USERS, payee.user_id, 'User')
        if user.role == UserRole.SALES:
            return calculate_sales_payroll(store, user.id, window)
        if user.role == UserRole.DESIGNER:
            return calculate_designer_earnings(store, user.id, story_price, window)
        raise ValidationError(f'{user.role.value} users have no earnings account', field='payee')
    raise ValidationError('payee must be a user or a printer', field='payee')


def parse_payee(data) -> Payee:
    """``{"kind": "user"|"printer", "id": ...}`` -> payee variant."""
    if not isinstance(data, dict):
        raise ValidationError('payee is required', field='payee')
    kind, ident = data.get('kind'), data.get('id')
    if not ident:
        raise ValidationError('payee.id is required', field='payee.id')
    if kind == 'user':
        return UserPayee(str(ident))
    if kind == 'printer':
        return PrinterPayee(str(ident))
    raise ValidationError('payee.kind must be user or printer', field='payee.kind', value=kind)


__all__ = [
    'DateWindow', 'UserPayee', 'PrinterPayee', 'Payee', 'SalesPayroll', 'StoryEarnings', 'total_paid',
    'calculate_sales_payroll', 'calculate_designer_earnings', 'calculate_printer_earnings',
    'calculate_earnings', 'parse_payee',
]
