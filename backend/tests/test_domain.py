from datetime import datetime, timezone
import pytest
from bookflow.domain import (
    Actor, Customer, FileRef, Order, OrderStatus, Payment, Story, StoryType, User, UserRole, changed_fields,
)
from bookflow.exceptions import ValidationError
from bookflow.services.serialization import iso, order_from_dict, order_to_dict, parse_datetime
from tests.test_utils_seed import make_order


def test_customer_requires_fields():
    with pytest.raises(ValidationError) as exc:
        Customer(name='Mona', address='', country='Egypt', phone='010')
    assert exc.value.field == 'address'


def test_story_coerces_type_and_copies():
    s = Story(details='d', type='Paperback', copies='3')
    assert s.type is StoryType.PAPERBACK
    assert s.copies == 3
    with pytest.raises(ValidationError):
        Story(details='d', type='Scroll')
    with pytest.raises(ValidationError):
        Story(details='d', type='Digital', copies=0)


def test_order_rejects_negative_price_and_unknown_status():
    base = make_order('u1')
    with pytest.raises(ValidationError):
        Order(**{**base.__dict__, 'price': -1})
    with pytest.raises(ValidationError):
        Order(**{**base.__dict__, 'status': 'Lost'})


def test_naive_datetimes_become_utc():
    o = make_order('u1', created_at=datetime(2024, 1, 2, 3, 4))
    assert o.created_at.tzinfo is timezone.utc


def test_payment_needs_exactly_one_payee():
    now = datetime.now(timezone.utc)
    Payment(id='p1', amount=10, date=now, user_id='u1')
    Payment(id='p2', amount=10, date=now, printer_id='pr1')
    with pytest.raises(ValidationError):
        Payment(id='p3', amount=10, date=now)
    with pytest.raises(ValidationError):
        Payment(id='p4', amount=10, date=now, user_id='u1', printer_id='pr1')


def test_user_rates_non_negative():
    with pytest.raises(ValidationError):
        User(id='u', name='n', email='e@x', role='Designer', story_rate=-5)
    assert User(id='u', name='n', email='e@x', role='Designer', story_rate=None).story_rate is None


def test_with_log_returns_new_snapshot():
    o = make_order('u1')
    actor = Actor(id='a', name='Admin', role=UserRole.ADMIN)
    from bookflow.domain import ActivityLogEntry
    entry = ActivityLogEntry(user=actor.name, role=actor.role, action='x', timestamp=o.created_at)
    o2 = o.with_log(entry, status=OrderStatus.DESIGNING)
    assert o.status == OrderStatus.NEW and len(o.activity_log) == 1
    assert o2.status == OrderStatus.DESIGNING and len(o2.activity_log) == 2
    assert set(changed_fields(o, o2)) == {'status', 'activity_log'}


def test_stored_files_lists_every_artifact():
    o = make_order('u1')
    ref = FileRef(name='ref.png', url='/files/a', path='a')
    cover = FileRef(name='cover.png', url='/files/b', path='b')
    o = Order(**{**o.__dict__, 'reference_images': (ref,), 'cover_image': cover})
    assert o.stored_files() == (ref, cover)


def test_order_dict_round_trip_keeps_log_and_dates():
    o = make_order('u1', alt_phone='0111', owner_name='Omar')
    data = order_to_dict(o)
    assert data['status'] == 'New Order'
    assert data['created_at'].endswith('Z')
    assert order_from_dict(data) == o


def test_parse_datetime_rejects_garbage():
    assert parse_datetime(None) is None
    assert iso(parse_datetime('2024-05-01T00:00:00Z')) == '2024-05-01T00:00:00Z'
    with pytest.raises(ValidationError):
        parse_datetime('yesterday', 'start')


def test_actor_is_admin():
    assert Actor(id='1', name='A', role='Admin').is_admin
    assert not Actor(id='2', name='B', role='Sales').is_admin
