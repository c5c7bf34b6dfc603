from __future__ import annotations
from flask import Blueprint, request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from bookflow import get_db, get_store
from bookflow.decorators.auth import require_roles
from bookflow.decorators.audit import audit_log
from bookflow.domain import Printer, ShippingCompany, ShippingType, User, UserRole, new_id
from bookflow.exceptions import ValidationError
from bookflow.models.user import User as UserModel
from bookflow.services.serialization import company_to_dict, printer_to_dict, user_to_dict
from bookflow.services.store import PRINTERS, SHIPPING_COMPANIES, USERS
from bookflow.utils.validation import optional_rate, require_str, validate_choice

directory_bp = Blueprint('directory', __name__)

ROLE_VALUES = [r.value for r in UserRole]
TYPE_VALUES = [t.value for t in ShippingType]


@directory_bp.get('/users')
@require_roles()
def list_users():
    role = request.args.get('role')
    filters = {'role': validate_choice(role, ROLE_VALUES, 'role')} if role else {}
    return {'data': [user_to_dict(u) for u in get_store().list(USERS, **filters)]}


@directory_bp.get('/printers')
@require_roles()
def list_printers():
    return {'data': [printer_to_dict(p) for p in get_store().list(PRINTERS)]}


@directory_bp.get('/shipping-companies')
@require_roles()
def list_shipping_companies():
    kind = request.args.get('type')
    filters = {'type': validate_choice(kind, TYPE_VALUES, 'type')} if kind else {}
    return {'data': [company_to_dict(c) for c in get_store().list(SHIPPING_COMPANIES, **filters)]}


@directory_bp.post('/users')
@require_roles(UserRole.ADMIN)
@audit_log('USER.CREATE', entity='User', entity_id_key='id', meta_keys=['email', 'role'])
def create_user():
    data = request.get_json(silent=True) or {}
    password = require_str(data, 'password')
    if len(password) < 6:
        raise ValidationError('password must be at least 6 characters', field='password')
    role = UserRole(validate_choice(data.get('role'), ROLE_VALUES, 'role'))
    user = User(
        id=new_id(),
        name=require_str(data, 'name'),
        email=require_str(data, 'email').lower(),
        role=role,
        phone=data.get('phone') or '',
        hourly_rate=optional_rate(data, 'hourly_rate') if role == UserRole.SALES and 'hourly_rate' in data else None,
        story_rate=optional_rate(data, 'story_rate') if role == UserRole.DESIGNER and 'story_rate' in data else None,
    )
    session = get_db()
    if session.execute(select(UserModel).where(UserModel.email == user.email)).scalar_one_or_none():
        raise ValidationError('email already in use', field='email')
    row = UserModel(id=user.id, name=user.name, email=user.email, phone=user.phone, role=user.role.value,
                    hourly_rate=user.hourly_rate, story_rate=user.story_rate)
    # hash is set before the single commit
    row.set_password(password)
    session.add(row)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ValidationError('email already in use', field='email')
    return user_to_dict(user), 201


@directory_bp.post('/printers')
@require_roles(UserRole.ADMIN)
@audit_log('PRINTER.CREATE', entity='Printer', entity_id_key='id', meta_keys=['name', 'story_rate'])
def create_printer():
    data = request.get_json(silent=True) or {}
    rate = optional_rate(data, 'story_rate') if 'story_rate' in data else None
    printer = Printer(id=new_id(), name=require_str(data, 'name'), story_rate=rate)
    get_store().insert(PRINTERS, printer)
    return printer_to_dict(printer), 201


@directory_bp.post('/shipping-companies')
@require_roles(UserRole.ADMIN)
@audit_log('SHIPPING_COMPANY.CREATE', entity='ShippingCompany', entity_id_key='id', meta_keys=['name', 'type'])
def create_shipping_company():
    data = request.get_json(silent=True) or {}
    company = ShippingCompany(
        id=new_id(),
        name=require_str(data, 'name'),
        type=validate_choice(data.get('type'), TYPE_VALUES, 'type'),
    )
    get_store().insert(SHIPPING_COMPANIES, company)
    return company_to_dict(company), 201
