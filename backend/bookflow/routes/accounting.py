from __future__ import annotations
from dataclasses import asdict
from flask import Blueprint, current_app, g, request
from bookflow import get_store
from bookflow.decorators.auth import require_roles
from bookflow.decorators.audit import audit_log
from bookflow.domain import Bonus, HoursLog, Payment, UserRole, new_id, utcnow
from bookflow.exceptions import ValidationError
from bookflow.services.accounting import (
    DateWindow, PrinterPayee, UserPayee, calculate_earnings, parse_payee,
)
from bookflow.services.serialization import (
    bonus_to_dict, hours_to_dict, parse_datetime, payment_to_dict, printer_to_dict, user_to_dict,
)
from bookflow.services.store import BONUSES, HOURS_LOGS, PAYMENTS, PRINTERS, USERS, fetch
from bookflow.utils.validation import optional_rate, optional_str, positive_number, require_str

acc_bp = Blueprint('accounting', __name__)


def _story_price() -> float:
    return float(current_app.config['STORY_PRICE'])


def _window():
    start = parse_datetime(request.args.get('start'), 'start')
    end = parse_datetime(request.args.get('end'), 'end')
    if start is None and end is None:
        return None
    return DateWindow(start, end)


def _entry_date(data):
    return parse_datetime(data.get('date'), 'date') or utcnow()


def _user_with_role(store, user_id: str, role: UserRole):
    user = fetch(store, USERS, user_id, 'User')
    if user.role != role:
        raise ValidationError(f'{user.name} is not a {role.value} user', field='user_id', value=user_id)
    return user


# ---------------- Ledger appends ---------------- #

@acc_bp.post('/hours')
@require_roles(UserRole.ADMIN)
@audit_log('LEDGER.HOURS.CREATE', entity='HoursLog', entity_id_key='id', meta_keys=['user_id', 'hours', 'rate'])
def add_hours():
    data = request.get_json(silent=True) or {}
    store = get_store()
    user = _user_with_role(store, require_str(data, 'user_id'), UserRole.SALES)
    # rate is frozen into the row; later rate changes do not touch it
    row = HoursLog(id=new_id(), user_id=user.id, hours=positive_number(data, 'hours'),
                   rate=user.hourly_rate or 0, date=_entry_date(data))
    store.insert(HOURS_LOGS, row)
    return hours_to_dict(row), 201


@acc_bp.post('/bonuses')
@require_roles(UserRole.ADMIN)
@audit_log('LEDGER.BONUS.CREATE', entity='Bonus', entity_id_key='id', meta_keys=['user_id', 'amount'])
def add_bonus():
    data = request.get_json(silent=True) or {}
    store = get_store()
    user = _user_with_role(store, require_str(data, 'user_id'), UserRole.SALES)
    row = Bonus(id=new_id(), user_id=user.id, amount=positive_number(data, 'amount'),
                date=_entry_date(data), notes=optional_str(data, 'notes'))
    store.insert(BONUSES, row)
    return bonus_to_dict(row), 201


@acc_bp.post('/payments')
@require_roles(UserRole.ADMIN)
@audit_log('LEDGER.PAYMENT.CREATE', entity='Payment', entity_id_key='id', meta_keys=['user_id', 'printer_id', 'amount'])
def add_payment():
    data = request.get_json(silent=True) or {}
    store = get_store()
    payee = parse_payee(data.get('payee'))
    amount = positive_number(data, 'amount')
    if isinstance(payee, PrinterPayee):
        fetch(store, PRINTERS, payee.printer_id, 'Printer')
        row = Payment(id=new_id(), amount=amount, date=_entry_date(data), printer_id=payee.printer_id,
                      notes=optional_str(data, 'notes'))
    else:
        fetch(store, USERS, payee.user_id, 'User')
        row = Payment(id=new_id(), amount=amount, date=_entry_date(data), user_id=payee.user_id,
                      notes=optional_str(data, 'notes'))
    store.insert(PAYMENTS, row)
    return payment_to_dict(row), 201


# ---------------- Rates ---------------- #

def _user_rates(user_id):
    return user_to_dict(fetch(get_store(), USERS, user_id, 'User'))


@acc_bp.put('/users/<user_id>/hourly-rate')
@require_roles(UserRole.ADMIN)
@audit_log('RATE.HOURLY.SET', entity='User', entity_id_key='id', diff_keys=['hourly_rate'],
           pre_fetch=lambda a, kw: _user_rates(kw.get('user_id')))
def set_hourly_rate(user_id: str):
    data = request.get_json(silent=True) or {}
    store = get_store()
    _user_with_role(store, user_id, UserRole.SALES)
    user = store.update(USERS, user_id, {'hourly_rate': optional_rate(data, 'hourly_rate')})
    return user_to_dict(user)


@acc_bp.put('/users/<user_id>/story-rate')
@require_roles(UserRole.ADMIN)
@audit_log('RATE.STORY.SET', entity='User', entity_id_key='id', diff_keys=['story_rate'],
           pre_fetch=lambda a, kw: _user_rates(kw.get('user_id')))
def set_designer_story_rate(user_id: str):
    data = request.get_json(silent=True) or {}
    store = get_store()
    _user_with_role(store, user_id, UserRole.DESIGNER)
    user = store.update(USERS, user_id, {'story_rate': optional_rate(data, 'story_rate')})
    return user_to_dict(user)


@acc_bp.put('/printers/<printer_id>/story-rate')
@require_roles(UserRole.ADMIN)
@audit_log('RATE.STORY.SET', entity='Printer', entity_id_key='id', meta_keys=['story_rate'])
def set_printer_story_rate(printer_id: str):
    data = request.get_json(silent=True) or {}
    store = get_store()
    fetch(store, PRINTERS, printer_id, 'Printer')
    printer = store.update(PRINTERS, printer_id, {'story_rate': optional_rate(data, 'story_rate')})
    return printer_to_dict(printer)


# ---------------- Summaries ---------------- #

def _summary_json(summary, name: str):
    body = asdict(summary)
    body['name'] = name
    return body


@acc_bp.get('/me')
@require_roles(UserRole.SALES, UserRole.DESIGNER)
def my_account():
    store = get_store()
    user = fetch(store, USERS, g.actor.id, 'User')
    result = calculate_earnings(store, UserPayee(user.id), _story_price(), _window())
    return _summary_json(result, user.name)


@acc_bp.get('/summary')
@require_roles(UserRole.ADMIN)
def summary():
    store = get_store()
    window = _window()
    price = _story_price()
    users = [u for u in store.list(USERS) if u.role in (UserRole.SALES, UserRole.DESIGNER)]
    return {
        'story_price': price,
        'sales': [_summary_json(calculate_earnings(store, UserPayee(u.id), price, window), u.name)
                  for u in users if u.role == UserRole.SALES],
        'designers': [_summary_json(calculate_earnings(store, UserPayee(u.id), price, window), u.name)
                      for u in users if u.role == UserRole.DESIGNER],
        'printers': [_summary_json(calculate_earnings(store, PrinterPayee(p.id), price, window), p.name)
                     for p in store.list(PRINTERS)],
    }
