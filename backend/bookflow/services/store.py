from __future__ import annotations
"""Persistence collaborator.

``Store`` is the read/write API the workflow core depends on; records in and out
are the frozen domain dataclasses. ``SqlAlchemyStore`` implements it over the ORM
tables in ``bookflow.models``. Every write commits; any SQLAlchemy error rolls the
session back and surfaces as ``PersistenceFailure`` with a symbolic category
chosen from the exception class.
"""
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Protocol, Tuple

from sqlalchemy import select
from sqlalchemy.exc import (
    IntegrityError, NoResultFound, OperationalError, ProgrammingError, SQLAlchemyError,
)
from sqlalchemy.orm import Session

from bookflow import domain
from bookflow.exceptions import NotFound, PersistenceFailure, ValidationError
from bookflow.models.ledger import Bonus as BonusModel, HoursLog as HoursLogModel, Payment as PaymentModel
from bookflow.models.order import Order as OrderModel
from bookflow.models.printer import Printer as PrinterModel
from bookflow.models.shipping_company import ShippingCompany as ShippingCompanyModel
from bookflow.models.user import User as UserModel
from bookflow.services import serialization as ser

USERS = 'users'
PRINTERS = 'printers'
SHIPPING_COMPANIES = 'shipping_companies'
ORDERS = 'orders'
HOURS_LOGS = 'hours_logs'
BONUSES = 'bonuses'
PAYMENTS = 'payments'


class Store(Protocol):
    def list(self, entity: str, **filters) -> List[Any]: ...
    def get(self, entity: str, id: str) -> Any: ...
    def insert(self, entity: str, record: Any) -> Any: ...
    def update(self, entity: str, id: str, patch: Mapping[str, Any]) -> Any: ...
    def delete(self, entity: str, id: str) -> None: ...


@dataclass(frozen=True)
class _Entity:
    model: type
    domain: type
    to_json: Callable[[Any], Dict[str, Any]]
    from_json: Callable[[Dict[str, Any]], Any]
    datetime_columns: Tuple[str, ...] = ()
    order_by: str = 'id'
    descending: bool = False


def _plain(cls):
    return lambda data: cls(**data)


ENTITIES: Dict[str, _Entity] = {
    USERS: _Entity(UserModel, domain.User, ser.user_to_dict, _plain(domain.User), order_by='name'),
    PRINTERS: _Entity(PrinterModel, domain.Printer, ser.printer_to_dict, _plain(domain.Printer), order_by='name'),
    SHIPPING_COMPANIES: _Entity(ShippingCompanyModel, domain.ShippingCompany, ser.company_to_dict,
                                _plain(domain.ShippingCompany), order_by='name'),
    ORDERS: _Entity(OrderModel, domain.Order, ser.order_to_dict, ser.order_from_dict,
                    datetime_columns=('created_at', 'delivery_date'), order_by='created_at', descending=True),
    HOURS_LOGS: _Entity(HoursLogModel, domain.HoursLog, ser.hours_to_dict, _plain(domain.HoursLog),
                        datetime_columns=('date',), order_by='date'),
    BONUSES: _Entity(BonusModel, domain.Bonus, ser.bonus_to_dict, _plain(domain.Bonus),
                     datetime_columns=('date',), order_by='date'),
    PAYMENTS: _Entity(PaymentModel, domain.Payment, ser.payment_to_dict, _plain(domain.Payment),
                      datetime_columns=('date',), order_by='date'),
}


def _entity(name: str) -> _Entity:
    try:
        return ENTITIES[name]
    except KeyError:
        raise ValidationError(f'unknown entity {name}', field='entity', value=name)


def _column_value(value):
    return value.value if isinstance(value, Enum) else value


class SqlAlchemyStore:
    def __init__(self, session: Session):
        self.session = session

    # --- conversion --- #

    @staticmethod
    def _to_row(meta: _Entity, record) -> Dict[str, Any]:
        data = meta.to_json(record)
        for col in meta.datetime_columns:
            data[col] = getattr(record, col)
        return data

    @staticmethod
    def _from_row(meta: _Entity, row):
        names = {f.name for f in fields(meta.domain)}
        data = {c.key: getattr(row, c.key) for c in meta.model.__table__.columns if c.key in names}
        return meta.from_json(data)

    @contextmanager
    def _translate(self, entity: str):
        try:
            yield
        except NoResultFound as e:
            self.session.rollback()
            raise PersistenceFailure(f'{entity} record not found', category=PersistenceFailure.NOT_FOUND,
                                     entity=entity) from e
        except IntegrityError as e:
            self.session.rollback()
            raise PersistenceFailure(f'{entity} write conflicts with existing data',
                                     category=PersistenceFailure.CONFLICT, entity=entity) from e
        except (OperationalError, ProgrammingError) as e:
            self.session.rollback()
            raise PersistenceFailure(f'{entity} storage is not available',
                                     category=PersistenceFailure.SCHEMA_MISSING, entity=entity) from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceFailure(f'{entity} store error', category=PersistenceFailure.BACKEND,
                                     entity=entity) from e

    def _load(self, meta: _Entity, id: str):
        return self.session.execute(select(meta.model).where(meta.model.id == id)).scalar_one()

    # --- Store API --- #

    def list(self, entity: str, **filters) -> List[Any]:
        meta = _entity(entity)
        q = select(meta.model)
        for key, value in filters.items():
            column = getattr(meta.model, key, None)
            if column is None:
                raise ValidationError(f'cannot filter {entity} by {key}', field=key)
            if isinstance(value, (list, tuple, set, frozenset)):
                q = q.where(column.in_([_column_value(v) for v in value]))
            else:
                q = q.where(column == _column_value(value))
        order_col = getattr(meta.model, meta.order_by)
        q = q.order_by(order_col.desc() if meta.descending else order_col.asc(), meta.model.id.asc())
        with self._translate(entity):
            rows = self.session.execute(q).scalars().all()
        return [self._from_row(meta, r) for r in rows]

    def get(self, entity: str, id: str):
        meta = _entity(entity)
        with self._translate(entity):
            row = self._load(meta, id)
        return self._from_row(meta, row)

    def insert(self, entity: str, record):
        meta = _entity(entity)
        with self._translate(entity):
            self.session.add(meta.model(**self._to_row(meta, record)))
            self.session.commit()
        return record

    def update(self, entity: str, id: str, patch: Mapping[str, Any]):
        """Apply ``patch`` (field -> domain value) and return the new snapshot."""
        meta = _entity(entity)
        if 'id' in patch and patch['id'] != id:
            raise ValidationError('id is immutable', field='id')
        with self._translate(entity):
            row = self._load(meta, id)
            current = self._from_row(meta, row)
            updated = replace(current, **patch)
            values = self._to_row(meta, updated)
            for key in patch:
                setattr(row, key, values[key])
            self.session.commit()
        return updated

    def delete(self, entity: str, id: str) -> None:
        meta = _entity(entity)
        with self._translate(entity):
            row = self._load(meta, id)
            self.session.delete(row)
            self.session.commit()

    def latest_update(self, entity: str = ORDERS) -> datetime | None:
        meta = _entity(entity)
        column = getattr(meta.model, 'updated_at', None)
        if column is None:
            return None
        with self._translate(entity):
            return self.session.execute(select(column).order_by(column.desc()).limit(1)).scalar()


def fetch(store: Store, entity: str, id: str, label: str):
    """``store.get`` with a missing record reported as ``NotFound(label, id)``."""
    try:
        return store.get(entity, id)
    except PersistenceFailure as e:
        if e.category == PersistenceFailure.NOT_FOUND:
            raise NotFound(label, id)
        raise


__all__ = [
    'Store', 'SqlAlchemyStore', 'fetch', 'ENTITIES', 'USERS', 'PRINTERS', 'SHIPPING_COMPANIES', 'ORDERS',
    'HOURS_LOGS', 'BONUSES', 'PAYMENTS',
]
