# -*- coding: utf-8 -*-
"""
Sesiones de coworking: cobro por tiempo, pausas, productos y cierre
"""
import pytest

from conejo_pos.errors import NotFoundError, StorageError, ValidationError


def _open(manager, client='Luis', **extra):
    return manager.open_coworking_session({'client': client, **extra}, actor='caja1')


def test_open_session_defaults(manager):
    session = _open(manager)
    assert session.status == 'active'
    assert session.hourly_rate == 72
    assert session.id.startswith('session_')
    assert session.start_time.startswith('2024-03-15T12:00')


def test_open_session_validation(manager):
    with pytest.raises(ValidationError):
        manager.open_coworking_session({'client': ' '})
    with pytest.raises(ValidationError):
        _open(manager, hourlyRate=0)


def test_live_values_recomputed_on_read(manager, clock):
    session = _open(manager)
    clock.advance(hours=1)
    live = manager.get_session(session.id)
    assert live.duration == 3600 * 1000
    assert live.time_charge == 72
    assert live.total == 72
    clock.advance(minutes=30)
    assert manager.list_sessions('active')[0].time_charge == 108


def test_close_bills_fractional_hours(manager, clock):
    session = _open(manager)
    clock.advance(hours=2, minutes=30)
    closed = manager.close_session(session.id, 'cash', actor='caja1')

    assert closed.status == 'closed'
    assert closed.time_charge == 180
    assert closed.applied_rate == 'hourly'
    assert closed.total == 180
    assert closed.end_time is not None

    record = manager.get_sale(closed.record_id)
    assert record.session_id == session.id
    assert record.service == 'coworking'
    assert record.hours == 3
    assert record.service_charge == 180
    assert record.total == 180


def test_four_hours_is_still_hourly(manager, clock):
    session = _open(manager)
    clock.advance(hours=4)
    closed = manager.close_session(session.id, 'card')
    assert closed.time_charge == 288
    assert closed.applied_rate == 'hourly'


def test_more_than_four_hours_uses_day_rate(manager, clock):
    session = _open(manager, hourlyRate=100)
    clock.advance(hours=5)
    closed = manager.close_session(session.id, 'cash')
    assert closed.time_charge == 225
    assert closed.applied_rate == 'day'
    assert manager.get_sale(closed.record_id).hours == 5


def test_paused_time_is_not_billed(manager, clock):
    session = _open(manager)
    clock.advance(hours=1)
    paused = manager.pause_session(session.id)
    assert paused.status == 'paused'

    clock.advance(hours=2)
    assert manager.get_session(session.id).duration == 3600 * 1000

    resumed = manager.resume_session(session.id)
    assert resumed.status == 'active'
    assert resumed.paused_duration == 2 * 3600 * 1000

    clock.advance(hours=1)
    closed = manager.close_session(session.id, 'cash')
    assert closed.duration == 2 * 3600 * 1000
    assert closed.time_charge == 144


def test_pause_and_resume_transitions(manager):
    session = _open(manager)
    with pytest.raises(ValidationError):
        manager.resume_session(session.id)
    manager.pause_session(session.id)
    with pytest.raises(ValidationError):
        manager.pause_session(session.id)


def test_close_paused_session(manager, clock):
    session = _open(manager)
    clock.advance(hours=1)
    manager.pause_session(session.id)
    clock.advance(hours=3)
    closed = manager.close_session(session.id, 'transfer')
    assert closed.time_charge == 72
    assert closed.paused_at is None


def test_line_items_take_stock_immediately(manager, make_product, clock):
    soda = make_product(name='Refresco', category='refrigerator', quantity=5, cost=10, price=25)
    session = _open(manager)

    session = manager.add_line_item(session.id, soda.id, 2)
    assert manager.get_product(soda.id).quantity == 3
    assert session.subtotal == 50

    session = manager.add_line_item(session.id, soda.id, 1)
    assert len(session.products) == 1
    assert session.products[0].quantity == 3

    session = manager.remove_line_item(session.id, soda.id, 2)
    assert session.products[0].quantity == 1
    assert manager.get_product(soda.id).quantity == 4

    clock.advance(hours=1)
    closed = manager.close_session(session.id, 'cash')
    # El cierre no vuelve a descontar
    assert manager.get_product(soda.id).quantity == 4
    assert closed.subtotal == 25
    assert closed.total == 97
    assert closed.cost == 10
    assert closed.profit == 87

    record = manager.get_sale(closed.record_id)
    assert record.products[0].quantity == 1
    assert record.total == 97


def test_cafeteria_items_in_session_are_not_charged(manager, make_product, clock):
    latte = make_product(name='Latte', category='cafeteria', quantity=5, cost=8, price=30)
    session = _open(manager)
    manager.add_line_item(session.id, latte.id, 2)
    clock.advance(hours=1)
    closed = manager.close_session(session.id, 'cash')
    assert closed.subtotal == 0
    assert closed.total == 72
    assert manager.get_sale(closed.record_id).drinks_cost == 16


def test_remove_whole_line(manager, make_product):
    soda = make_product(category='refrigerator', quantity=5)
    session = _open(manager)
    manager.add_line_item(session.id, soda.id, 3)
    session = manager.remove_line_item(session.id, soda.id)
    assert session.products == []
    assert manager.get_product(soda.id).quantity == 5
    with pytest.raises(ValidationError):
        manager.remove_line_item(session.id, soda.id)


def test_add_line_item_validation(manager, make_product):
    soda = make_product(category='refrigerator')
    session = _open(manager)
    with pytest.raises(ValidationError):
        manager.add_line_item(session.id, 'product_missing', 1)
    with pytest.raises(ValidationError):
        manager.add_line_item(session.id, soda.id, 0)
    with pytest.raises(NotFoundError):
        manager.add_line_item('session_missing', soda.id, 1)


def test_session_stock_shortfall_returns_only_taken_units(manager, make_product):
    soda = make_product(category='refrigerator', quantity=1)
    session = _open(manager)
    session = manager.add_line_item(session.id, soda.id, 3)
    assert manager.get_product(soda.id).quantity == 0
    assert session.stock_warnings[0]['requested'] == 3
    assert session.stock_warnings[0]['available'] == 1

    manager.cancel_session(session.id)
    assert manager.get_product(soda.id).quantity == 1


def test_cancel_returns_stock_and_emits_no_record(manager, make_product, clock):
    soda = make_product(category='refrigerator', quantity=5)
    session = _open(manager)
    manager.add_line_item(session.id, soda.id, 2)
    clock.advance(hours=2)

    cancelled = manager.cancel_session(session.id, actor='admin')
    assert cancelled.status == 'cancelled'
    assert cancelled.record_id is None
    assert manager.get_product(soda.id).quantity == 5
    assert manager.list_sales() == []

    with pytest.raises(ValidationError):
        manager.close_session(session.id, 'cash')


def test_closed_session_is_frozen(manager, clock):
    session = _open(manager)
    clock.advance(hours=1)
    closed = manager.close_session(session.id, 'cash')
    clock.advance(hours=10)
    again = manager.get_session(session.id)
    assert again.total == closed.total
    assert again.duration == closed.duration
    assert manager.list_sessions('closed')[0].id == session.id
    with pytest.raises(ValidationError):
        manager.close_session(session.id, 'cash')
    with pytest.raises(ValidationError):
        manager.add_line_item(session.id, 'product_x', 1)


def test_close_rejects_bad_payment(manager):
    session = _open(manager)
    with pytest.raises(ValidationError):
        manager.close_session(session.id, 'efectivo')
    assert manager.get_session(session.id).status == 'active'


def test_membership_checked_before_day_rate(manager, clock):
    manager.create_membership({
        'clientName': 'Luis', 'membershipType': 'monthly', 'price': 900, 'paymentMethod': 'card',
    })
    session = _open(manager)
    clock.advance(hours=6)
    closed = manager.close_session(session.id, 'cash')

    assert closed.time_charge == 0
    assert closed.applied_rate == 'membership'
    record = manager.get_sale(closed.record_id)
    assert record.membership_applied is True
    assert record.hours == 6
    assert manager.list_customers()[0].membership_benefits_used == 6


def test_close_updates_customer_once(manager, clock):
    session = _open(manager, client='Marta')
    clock.advance(hours=2)
    manager.close_session(session.id, 'cash')
    customer = manager.search_customers('marta')[0]
    assert customer.total_visits == 1
    assert customer.total_sessions == 1
    assert customer.total_hours == 2
    assert customer.total_spent == 144


def test_list_sessions_rejects_unknown_status(manager):
    with pytest.raises(ValidationError):
        manager.list_sessions('running')


def test_second_close_during_close_emits_one_record(manager, clock, monkeypatch):
    session = _open(manager, client='Marta')
    clock.advance(hours=1)
    customers = manager.container.customer_service
    original = customers.find_by_name
    interleaved = []

    def find_while_other_caja_closes(name):
        # Otra caja cierra la misma sesión mientras esta calcula el cobro
        if not interleaved:
            interleaved.append(session.id)
            manager.close_session(session.id, 'card')
        return original(name)

    monkeypatch.setattr(customers, 'find_by_name', find_while_other_caja_closes)

    with pytest.raises(ValidationError):
        manager.close_session(session.id, 'cash')

    records = manager.list_sales()
    assert len(records) == 1
    assert records[0].payment == 'card'
    assert manager.get_session(session.id).record_id == records[0].id
    assert manager.search_customers('marta')[0].total_visits == 1


def test_failed_sale_reopens_session(manager, clock, monkeypatch):
    session = _open(manager)
    clock.advance(hours=2)

    def broken(*args, **kwargs):
        raise StorageError('records no disponible')

    monkeypatch.setattr(manager.container.sales_service, 'register_session_sale', broken)
    with pytest.raises(StorageError):
        manager.close_session(session.id, 'cash')

    reopened = manager.get_session(session.id)
    assert reopened.status == 'active'
    assert reopened.end_time is None
    assert reopened.payment is None
    assert manager.list_sales(include_deleted=True) == []

    monkeypatch.undo()
    closed = manager.close_session(session.id, 'cash')
    assert closed.status == 'closed'
    assert closed.total == 144


def test_line_added_to_just_closed_session_keeps_stock(manager, make_product, monkeypatch):
    product = make_product(quantity=10)
    session = _open(manager)
    inventory = manager.container.inventory_service
    original = inventory.resolve_line_items

    def resolve_while_other_caja_closes(items):
        manager.close_session(session.id, 'cash')
        return original(items)

    monkeypatch.setattr(inventory, 'resolve_line_items', resolve_while_other_caja_closes)

    with pytest.raises(ValidationError):
        manager.add_line_item(session.id, product.id, 2)

    assert manager.get_product(product.id).quantity == 10
    assert manager.get_session(session.id).products == []
