from types import SimpleNamespace
import pytest
from sqlalchemy import select
from bookflow import get_db
from bookflow.domain import OrderStatus, UserRole
from bookflow.models.audit import AuditLog
from tests.test_lifecycle_helpers import jwt_headers
from tests.test_utils_seed import ensure_printer, ensure_user, seed_order


@pytest.fixture()
def team(app_instance):
    with app_instance.app_context():
        ns = SimpleNamespace(
            admin=ensure_user('acc_admin@example.com', UserRole.ADMIN),
            sales=ensure_user('acc_sales@example.com', UserRole.SALES, name='Salma', hourly_rate=40),
            designer=ensure_user('acc_designer@example.com', UserRole.DESIGNER, name='Nour'),
            shipping=ensure_user('acc_ship@example.com', UserRole.SHIPPING),
            printer=ensure_printer('Alexandria Press'),
        )
        ns.admin_h = jwt_headers(ns.admin)
        ns.sales_h = jwt_headers(ns.sales)
        ns.designer_h = jwt_headers(ns.designer)
        ns.shipping_h = jwt_headers(ns.shipping)
    return ns


def test_hours_capture_current_rate(client, team):
    resp = client.post('/accounting/hours', headers=team.admin_h, json={'user_id': team.sales.id, 'hours': 10})
    assert resp.status_code == 201, resp.get_json()
    assert resp.get_json()['rate'] == 40
    client.put(f'/accounting/users/{team.sales.id}/hourly-rate', headers=team.admin_h, json={'hourly_rate': 60})
    client.post('/accounting/hours', headers=team.admin_h, json={'user_id': team.sales.id, 'hours': 5})
    me = client.get('/accounting/me', headers=team.sales_h).get_json()
    assert me['total_hours'] == 15
    assert me['earnings_from_hours'] == 10 * 40 + 5 * 60
    assert me['name'] == 'Salma'


def test_hours_only_for_sales(client, team):
    resp = client.post('/accounting/hours', headers=team.admin_h, json={'user_id': team.designer.id, 'hours': 2})
    assert resp.status_code == 400
    denied = client.post('/accounting/hours', headers=team.sales_h, json={'user_id': team.sales.id, 'hours': 2})
    assert denied.status_code == 403


def test_bonus_and_payment_feed_balance(client, team):
    client.post('/accounting/hours', headers=team.admin_h, json={'user_id': team.sales.id, 'hours': 10})
    r = client.post('/accounting/bonuses', headers=team.admin_h,
                    json={'user_id': team.sales.id, 'amount': 100, 'notes': 'Eid'})
    assert r.status_code == 201
    r = client.post('/accounting/payments', headers=team.admin_h,
                    json={'payee': {'kind': 'user', 'id': team.sales.id}, 'amount': 150})
    assert r.status_code == 201
    assert r.get_json()['printer_id'] is None
    me = client.get('/accounting/me', headers=team.sales_h).get_json()
    assert me['total_earnings'] == 500
    assert me['total_paid'] == 150
    assert me['balance'] == 350


def test_payment_validation(client, team):
    bad_kind = client.post('/accounting/payments', headers=team.admin_h,
                           json={'payee': {'kind': 'vendor', 'id': 'x'}, 'amount': 10})
    assert bad_kind.status_code == 400
    missing = client.post('/accounting/payments', headers=team.admin_h,
                          json={'payee': {'kind': 'printer', 'id': 'nope'}, 'amount': 10})
    assert missing.status_code == 404
    zero = client.post('/accounting/payments', headers=team.admin_h,
                       json={'payee': {'kind': 'printer', 'id': team.printer.id}, 'amount': 0})
    assert zero.status_code == 400


def test_designer_story_rate_and_earnings(client, team, app_instance):
    with app_instance.app_context():
        for status in (OrderStatus.PRINTING, OrderStatus.DELIVERED, OrderStatus.DESIGNING):
            seed_order(team.sales.id, status, assigned_to_designer=team.designer.id)
    me = client.get('/accounting/me', headers=team.designer_h).get_json()
    assert me['completed_count'] == 2
    assert me['rate'] == 120
    assert me['earnings'] == 240
    resp = client.put(f'/accounting/users/{team.designer.id}/story-rate', headers=team.admin_h,
                      json={'story_rate': 150})
    assert resp.status_code == 200
    assert client.get('/accounting/me', headers=team.designer_h).get_json()['earnings'] == 300
    with app_instance.app_context():
        row = get_db().execute(select(AuditLog).where(AuditLog.action == 'RATE.STORY.SET')).scalar_one()
        assert row.meta['changes'] == {'story_rate': {'before': None, 'after': 150.0}}


def test_story_rate_rejects_wrong_role(client, team):
    resp = client.put(f'/accounting/users/{team.sales.id}/story-rate', headers=team.admin_h, json={'story_rate': 10})
    assert resp.status_code == 400


def test_printer_rate_and_summary(client, team, app_instance):
    with app_instance.app_context():
        seed_order(team.sales.id, OrderStatus.DELIVERED, assigned_to_printer=team.printer.id)
    resp = client.put(f'/accounting/printers/{team.printer.id}/story-rate', headers=team.admin_h,
                      json={'story_rate': 80})
    assert resp.status_code == 200
    summary = client.get('/accounting/summary', headers=team.admin_h)
    assert summary.status_code == 200
    body = summary.get_json()
    assert body['story_price'] == 120
    (printer,) = body['printers']
    assert printer['earnings'] == 80
    assert [s['name'] for s in body['sales']] == ['Salma']
    assert [d['name'] for d in body['designers']] == ['Nour']


def test_summary_window_and_access(client, team):
    client.post('/accounting/hours', headers=team.admin_h,
                json={'user_id': team.sales.id, 'hours': 3, 'date': '2024-05-03T10:00:00Z'})
    client.post('/accounting/hours', headers=team.admin_h,
                json={'user_id': team.sales.id, 'hours': 4, 'date': '2024-06-03T10:00:00Z'})
    body = client.get('/accounting/summary?start=2024-05-01T00:00:00Z&end=2024-06-01T00:00:00Z',
                      headers=team.admin_h).get_json()
    assert body['sales'][0]['total_hours'] == 3
    assert client.get('/accounting/summary', headers=team.sales_h).status_code == 403
    assert client.get('/accounting/me', headers=team.shipping_h).status_code == 403
    bad = client.get('/accounting/me?start=soon', headers=team.sales_h)
    assert bad.status_code == 400
