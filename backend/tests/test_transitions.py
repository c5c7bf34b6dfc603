import io
import logging
from datetime import datetime, timezone
import pytest
from bookflow.domain import Actor, Customer, OrderStatus, Printer, ShippingCompany, User, UserRole
from bookflow.exceptions import InvalidTransition, MissingArtifact, NotFound, PermissionDenied, UploadFailure, ValidationError
from bookflow.services.orders import OrderService
from bookflow.services.store import ORDERS, PRINTERS, SHIPPING_COMPANIES, USERS
from bookflow.services.transitions import (
    AssignDesigner, CancelOrder, CompleteDesign, CompletePrinting, ConfirmArrival, EditOrderDetails, MarkDelivered,
    TransitionEngine,
)
from bookflow.storage.provider import Upload
from tests.fakes import InMemoryStore, MemoryStorage
from tests.test_utils_seed import make_order

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
ADMIN = Actor(id='admin-1', name='Admin', role=UserRole.ADMIN)
PRINTER = Actor(id='user-8', name='Press Operator', role=UserRole.PRINTER)
SHIPPER = Actor(id='user-9', name='Shipper', role=UserRole.SHIPPING)


@pytest.fixture()
def store():
    s = InMemoryStore()
    s.insert(USERS, User(id='user-3', name='Nour', email='nour@example.com', role=UserRole.DESIGNER))
    s.insert(USERS, User(id='user-6', name='Hany', email='hany@example.com', role=UserRole.DESIGNER))
    s.insert(USERS, User(id='sales-1', name='Salma', email='salma@example.com', role=UserRole.SALES))
    s.insert(PRINTERS, Printer(id='printer-1', name='Cairo Modern Printing'))
    s.insert(SHIPPING_COMPANIES, ShippingCompany(id='ship-1', name='Aramex', type='International'))
    s.insert(SHIPPING_COMPANIES, ShippingCompany(id='ship-3', name='Bosta', type='Domestic'))
    return s


@pytest.fixture()
def files():
    return MemoryStorage()


@pytest.fixture()
def engine(store, files):
    return TransitionEngine(store, files, clock=lambda: NOW)


def _upload(name, content=b'data'):
    return Upload(io.BytesIO(content), name)


def test_printing_complete_domestic_goes_to_domestic_shipping(engine):
    order = make_order('sales-1', OrderStatus.PRINTING, country='Egypt')
    out = engine.apply(order, CompletePrinting('ship-3', 'TRK1'), PRINTER)
    assert out.status == OrderStatus.DOMESTIC_SHIPPING
    assert out.domestic_shipping_info.company == 'Bosta'
    assert out.domestic_shipping_info.tracking_number == 'TRK1'
    assert out.domestic_shipping_info.date == NOW
    assert out.international_shipping_info is None
    assert len(out.activity_log) == len(order.activity_log) + 1
    assert 'Bosta' in out.activity_log[-1].action
    assert order.status == OrderStatus.PRINTING


def test_printing_complete_abroad_goes_international(engine):
    order = make_order('sales-1', OrderStatus.PRINTING, country='Libya')
    out = engine.apply(order, CompletePrinting('ship-3', 'TRK1'), PRINTER)
    assert out.status == OrderStatus.INTERNATIONAL_SHIPPING
    assert out.international_shipping_info.tracking_number == 'TRK1'
    assert out.activity_log[-1].action == 'Printing Complete. Shipped via Bosta'


def test_printing_complete_needs_tracking(engine):
    order = make_order('sales-1', OrderStatus.PRINTING)
    with pytest.raises(MissingArtifact) as exc:
        engine.apply(order, CompletePrinting('ship-3', '  '), PRINTER)
    assert exc.value.field == 'tracking_number'


def test_unassigned_designer_cannot_complete_design(engine):
    order = make_order('sales-1', OrderStatus.DESIGNING, assigned_to_designer='user-6')
    designer = Actor(id='user-3', name='Nour', role=UserRole.DESIGNER)
    with pytest.raises(PermissionDenied):
        engine.apply(order, CompleteDesign('printer-1', _upload('cover.png'), _upload('final.pdf')), designer)


def test_sales_cannot_cancel_own_order_once_printing(engine):
    order = make_order('sales-1', OrderStatus.PRINTING)
    sales = Actor(id='sales-1', name='Salma', role=UserRole.SALES)
    with pytest.raises(PermissionDenied):
        engine.apply(order, CancelOrder(), sales)


def test_sales_cancels_own_new_order(engine):
    order = make_order('sales-1', OrderStatus.NEW)
    out = engine.apply(order, CancelOrder(), Actor(id='sales-1', name='Salma', role=UserRole.SALES))
    assert out.status == OrderStatus.CANCELLED
    assert out.activity_log[-1].action == 'Order Cancelled'
    assert out.activity_log[-1].role == UserRole.SALES


def test_admin_cannot_cancel_terminal_order(engine):
    with pytest.raises(InvalidTransition):
        engine.apply(make_order('sales-1', OrderStatus.DELIVERED), CancelOrder(), ADMIN)


def test_assign_designer(engine):
    out = engine.apply(make_order('sales-1'), AssignDesigner('user-3'), ADMIN)
    assert out.status == OrderStatus.DESIGNING
    assert out.assigned_to_designer == 'user-3'
    assert out.activity_log[-1].action == 'Assigned to Designer Nour'
    assert out.activity_log[-1].timestamp == NOW


def test_assign_designer_rejects_missing_or_wrong_user(engine):
    order = make_order('sales-1')
    with pytest.raises(MissingArtifact):
        engine.apply(order, AssignDesigner(None), ADMIN)
    with pytest.raises(NotFound):
        engine.apply(order, AssignDesigner('ghost'), ADMIN)
    with pytest.raises(ValidationError):
        engine.apply(order, AssignDesigner('sales-1'), ADMIN)


def test_assign_designer_from_wrong_stage(engine):
    with pytest.raises(InvalidTransition):
        engine.apply(make_order('sales-1', OrderStatus.PRINTING), AssignDesigner('user-3'), ADMIN)


def test_complete_design_uploads_both_files(engine, files):
    order = make_order('sales-1', OrderStatus.DESIGNING, assigned_to_designer='user-3')
    designer = Actor(id='user-3', name='Nour', role=UserRole.DESIGNER)
    out = engine.apply(order, CompleteDesign('printer-1', _upload('cover.png'), _upload('final.pdf', b'%PDF')), designer)
    assert out.status == OrderStatus.PRINTING
    assert out.assigned_to_printer == 'printer-1'
    assert out.cover_image.name == 'cover.png'
    assert out.final_pdf.path.startswith(f'public/{order.id}/')
    assert out.final_pdf.path.endswith('-final.pdf')
    assert files.files[out.final_pdf.path] == b'%PDF'
    assert out.activity_log[-1].action == 'Completed Design & Assigned to Cairo Modern Printing'
    assert out.activity_log[-1].file == out.final_pdf


def test_complete_design_keeps_cover_and_pdf_apart_for_arabic_names(engine, files):
    order = make_order('sales-1', OrderStatus.DESIGNING, assigned_to_designer='user-3')
    cmd = CompleteDesign('printer-1', _upload('غلاف', b'PNG'), _upload('الكتاب.pdf', b'%PDF'))
    out = engine.apply(order, cmd, ADMIN)
    assert out.cover_image.path != out.final_pdf.path
    assert files.files[out.cover_image.path] == b'PNG'
    assert files.files[out.final_pdf.path] == b'%PDF'
    assert out.final_pdf.path.endswith('-file.pdf')
    assert out.cover_image.name == 'غلاف'
    assert out.final_pdf.name == 'الكتاب.pdf'


def test_complete_design_missing_pdf(engine, files):
    order = make_order('sales-1', OrderStatus.DESIGNING, assigned_to_designer='user-3')
    with pytest.raises(MissingArtifact) as exc:
        engine.apply(order, CompleteDesign('printer-1', _upload('cover.png'), None), ADMIN)
    assert exc.value.field == 'final_pdf'
    assert files.files == {}


def test_complete_design_pdf_failure_removes_cover(store):
    files = MemoryStorage(fail_on='.pdf')
    engine = TransitionEngine(store, files, clock=lambda: NOW)
    order = make_order('sales-1', OrderStatus.DESIGNING, assigned_to_designer='user-3')
    with pytest.raises(UploadFailure):
        engine.apply(order, CompleteDesign('printer-1', _upload('cover.png'), _upload('final.pdf')), ADMIN)
    assert files.files == {}
    assert len(files.deleted) == 1


def test_confirm_arrival_defaults_tracking(engine):
    order = make_order('sales-1', OrderStatus.INTERNATIONAL_SHIPPING, country='Libya', order_id='ord-7')
    out = engine.apply(order, ConfirmArrival('ship-3'), SHIPPER)
    assert out.status == OrderStatus.DOMESTIC_SHIPPING
    assert out.domestic_shipping_info.tracking_number == 'DOM-ord-7'
    assert out.activity_log[-1].action == 'Arrived in country. Forwarded to Bosta'


def test_mark_delivered_sets_delivery_date(engine):
    out = engine.apply(make_order('sales-1', OrderStatus.DOMESTIC_SHIPPING), MarkDelivered(), SHIPPER)
    assert out.status == OrderStatus.DELIVERED
    assert out.delivery_date == NOW
    assert out.activity_log[-1].action == 'Marked as Delivered'


def test_mark_delivered_requires_domestic_leg(engine):
    with pytest.raises(InvalidTransition):
        engine.apply(make_order('sales-1', OrderStatus.INTERNATIONAL_SHIPPING), MarkDelivered(), SHIPPER)


def test_edit_details_keeps_status(engine):
    order = make_order('sales-1', OrderStatus.DESIGNING)
    new_customer = Customer(name='Mona A.', address='1 Tahrir Sq', country='Egypt', phone='010')
    out = engine.apply(order, EditOrderDetails(customer=new_customer, price=500),
                       Actor(id='sales-1', name='Salma', role=UserRole.SALES))
    assert out.status == OrderStatus.DESIGNING
    assert out.customer == new_customer
    assert out.price == 500
    assert out.activity_log[-1].action == 'Order details updated'


def test_edit_details_requires_a_change(engine):
    with pytest.raises(ValidationError):
        engine.apply(make_order('sales-1'), EditOrderDetails(), ADMIN)


def test_apply_logs_each_transition(engine, caplog):
    caplog.set_level(logging.INFO, logger='bookflow.services.transitions')
    engine.apply(make_order('sales-1', order_id='ord-1'), AssignDesigner('user-3'), ADMIN)
    assert any('ord-1' in r.getMessage() and 'assign_designer' in r.getMessage() for r in caplog.records)


def test_discard_swallows_storage_errors(store, caplog):
    from bookflow.domain import FileRef
    engine = TransitionEngine(store, MemoryStorage(fail_delete=True))
    engine.discard([FileRef(name='a', url='/files/a', path='a')])
    assert any(r.levelno == logging.WARNING for r in caplog.records)


TRANSITION_SOURCES = {
    'assign_designer': ({OrderStatus.NEW}, lambda: AssignDesigner('user-3')),
    'complete_design': ({OrderStatus.DESIGNING},
                        lambda: CompleteDesign('printer-1', _upload('cover.png'), _upload('final.pdf'))),
    'complete_printing': ({OrderStatus.PRINTING}, lambda: CompletePrinting('ship-3', 'TRK1')),
    'confirm_arrival': ({OrderStatus.INTERNATIONAL_SHIPPING}, lambda: ConfirmArrival('ship-3', 'TRK2')),
    'mark_delivered': ({OrderStatus.DOMESTIC_SHIPPING}, lambda: MarkDelivered()),
    'cancel': (set(OrderStatus) - {OrderStatus.DELIVERED, OrderStatus.CANCELLED}, lambda: CancelOrder()),
}


@pytest.mark.parametrize('name,status', [
    (name, status) for name, (sources, _) in TRANSITION_SOURCES.items() for status in OrderStatus if status not in sources
])
def test_wrong_source_status_leaves_order_untouched(name, status, store, files):
    command = TRANSITION_SOURCES[name][1]
    service = OrderService(store, files, clock=lambda: NOW)
    order = store.insert(ORDERS, make_order('sales-1', status, country='Libya',
                                            assigned_to_designer='user-3', order_id='ord-x'))
    with pytest.raises(InvalidTransition):
        service.perform(order.id, command(), ADMIN)
    assert store.get(ORDERS, order.id) == order
    assert files.files == {}


@pytest.mark.parametrize('country,route', [
    ('Libya', [OrderStatus.INTERNATIONAL_SHIPPING, OrderStatus.DOMESTIC_SHIPPING]),
    ('Egypt', [OrderStatus.DOMESTIC_SHIPPING]),
])
def test_activity_log_grows_by_one_through_full_lifecycle(country, route, store, files):
    service = OrderService(store, files, clock=lambda: NOW)
    order = store.insert(ORDERS, make_order('sales-1', country=country, order_id='ord-life'))
    steps = [
        AssignDesigner('user-3'),
        EditOrderDetails(price=250),
        CompleteDesign('printer-1', _upload('cover.png'), _upload('final.pdf')),
        CompletePrinting('ship-1', 'TRK1'),
    ]
    if OrderStatus.INTERNATIONAL_SHIPPING in route:
        steps.append(ConfirmArrival('ship-3'))
    steps.append(MarkDelivered())
    seen = [order.status]
    for command in steps:
        before = order
        order = service.perform(order.id, command, ADMIN)
        assert len(order.activity_log) == len(before.activity_log) + 1
        assert order.activity_log[:-1] == before.activity_log
        if order.status != seen[-1]:
            seen.append(order.status)
    assert seen == [OrderStatus.NEW, OrderStatus.DESIGNING, OrderStatus.PRINTING] + route + [OrderStatus.DELIVERED]
    assert store.get(ORDERS, order.id) == order
