# -*- coding: utf-8 -*-
"""
Ventas: montos, stock, clientes y borrado lógico (los tres backends)
"""
import copy
import threading

import pytest

from conejo_pos.config import Settings
from conejo_pos.database_manager import DatabaseManager
from conejo_pos.errors import NotFoundError, StorageTimeout, ValidationError
from conejo_pos.repositories.backends import JSONFileBackend, SQLBackend


def _sale(manager, product, quantity, service='cafeteria', **extra):
    data = {
        'client': 'Ana López',
        'service': service,
        'products': [{'productId': product.id, 'quantity': quantity}],
        'payment': 'cash',
        **extra,
    }
    return manager.create_sale(data, actor='caja1')


def test_cafeteria_sale_scenario(manager, make_product):
    product = make_product(quantity=10, cost=5, price=20)
    record = _sale(manager, product, 3)

    assert record.total == 60
    assert record.cost == 15
    assert record.profit == 45
    assert record.service_charge == 0
    assert record.hours == 0
    assert record.id.startswith('record_')
    assert record.created_by == 'caja1'
    assert manager.get_product(product.id).quantity == 7


def test_coworking_sale_scenario(manager, make_product):
    soda = make_product(name='Refresco', category='refrigerator', quantity=5, cost=10, price=25)
    record = _sale(manager, soda, 1, service='coworking', hours=2)

    assert record.service_charge == 116
    assert record.subtotal == 25
    assert record.total == 141
    assert record.cost == 10
    assert record.profit == 131
    assert record.membership_applied is False


def test_coworking_sale_reports_cafeteria_cost_as_drinks(manager, make_product):
    latte = make_product(name='Latte', category='cafeteria', quantity=5, cost=8, price=30)
    record = _sale(manager, latte, 2, service='coworking', hours=1)
    assert record.subtotal == 0
    assert record.drinks_cost == 16
    assert record.total == 58
    assert record.profit == 42


def test_delete_restores_stock_exactly(manager, make_product):
    product = make_product(quantity=10)
    record = _sale(manager, product, 3)
    manager.delete_sale(record.id, actor='admin')

    assert manager.get_product(product.id).quantity == 10
    assert manager.list_sales() == []
    deleted = manager.list_sales(include_deleted=True)
    assert deleted[0].is_deleted is True
    assert deleted[0].deleted_by == 'admin'
    with pytest.raises(NotFoundError):
        manager.get_sale(record.id)


def test_insufficient_stock_is_a_warning(manager, make_product):
    product = make_product(quantity=2)
    record = _sale(manager, product, 5)

    assert record.total == 100
    assert manager.get_product(product.id).quantity == 0
    assert record.stock_warnings == [{
        'productId': product.id,
        'name': product.name,
        'requested': 5,
        'available': 2,
    }]
    assert manager.get_sale(record.id).stock_warnings == record.stock_warnings

    # Solo vuelve lo que realmente salió
    manager.delete_sale(record.id)
    assert manager.get_product(product.id).quantity == 2


def test_duplicate_lines_are_merged(manager, make_product):
    product = make_product(quantity=10)
    record = manager.create_sale({
        'client': 'Ana',
        'service': 'cafeteria',
        'products': [
            {'productId': product.id, 'quantity': 1},
            {'productId': product.id, 'quantity': 2},
        ],
        'payment': 'card',
    })
    assert len(record.products) == 1
    assert record.products[0].quantity == 3
    assert manager.get_product(product.id).quantity == 7


@pytest.mark.parametrize('overrides, message', [
    ({'client': ''}, 'cliente'),
    ({'service': 'bar'}, 'Servicio'),
    ({'payment': 'bitcoin'}, 'pago'),
    ({'tip': -1}, 'propina'),
    ({'service': 'coworking', 'hours': 0}, 'horas'),
    ({'products': []}, 'producto'),
    ({'products': [{'productId': 'product_missing', 'quantity': 1}]}, 'product_missing'),
    ({'products': [{'productId': 'PID', 'quantity': 0}]}, 'Cantidad'),
    ({'products': [{'productId': 'PID', 'quantity': 1.5}]}, 'Cantidad'),
])
def test_validation_fails_before_any_write(manager, make_product, overrides, message):
    product = make_product(quantity=10)
    data = {
        'client': 'Ana',
        'service': 'cafeteria',
        'products': [{'productId': product.id, 'quantity': 1}],
        'payment': 'cash',
    }
    data.update(copy.deepcopy(overrides))
    if data['products'] and data['products'][0].get('productId') == 'PID':
        data['products'][0]['productId'] = product.id

    with pytest.raises(ValidationError) as exc:
        manager.create_sale(data)

    assert message in str(exc.value)
    assert manager.list_sales(include_deleted=True) == []
    assert manager.get_product(product.id).quantity == 10
    assert manager.list_customers() == []


def test_inactive_product_cannot_be_sold(manager, make_product):
    product = make_product()
    manager.soft_delete_product(product.id)
    with pytest.raises(ValidationError):
        _sale(manager, product, 1)


def test_sale_updates_customer_aggregate(manager, make_product):
    product = make_product(quantity=10, price=20)
    _sale(manager, product, 3)
    _sale(manager, product, 1, client='ana lópez', payment='card')

    customers = manager.list_customers()
    assert len(customers) == 1
    customer = customers[0]
    assert customer.total_visits == 2
    assert customer.total_spent == 80
    assert customer.average_spent == 40
    assert customer.loyalty_points == 80
    assert customer.loyalty_tier == 'bronze'
    assert customer.payment_statistics == {'cash': 1, 'card': 1, 'transfer': 0}
    assert customer.product_statistics[product.id]['quantity'] == 4
    assert customer.weekday_preferences == {'Friday': 2}


def test_big_spender_reaches_silver(manager, make_product):
    laptop_day = make_product(name='Paquete evento', category='food', price=2500, cost=1000)
    _sale(manager, laptop_day, 1)
    customer = manager.list_customers()[0]
    assert customer.loyalty_points == 2500
    assert customer.loyalty_tier == 'silver'


def test_deleting_sale_keeps_customer_history(manager, make_product):
    product = make_product()
    record = _sale(manager, product, 2)
    manager.delete_sale(record.id)
    assert manager.list_customers()[0].total_visits == 1


def test_update_sale_recomputes_with_tip(manager, make_product):
    product = make_product()
    record = _sale(manager, product, 3)
    updated = manager.update_sale(record.id, {'tip': 10, 'notes': 'mesa 4', 'payment': 'transfer'})
    assert updated.tip == 10
    assert updated.total == 70
    assert updated.profit == 55
    assert updated.notes == 'mesa 4'
    assert updated.payment == 'transfer'


def test_update_sale_rejects_money_fields(manager, make_product):
    product = make_product()
    record = _sale(manager, product, 1)
    with pytest.raises(ValidationError):
        manager.update_sale(record.id, {'total': 1})
    with pytest.raises(ValidationError):
        manager.update_sale(record.id, {'tip': -5})


def test_list_sales_filters(manager, make_product, clock):
    product = make_product(quantity=50)
    _sale(manager, product, 1)
    clock.advance(days=1)
    _sale(manager, product, 1, client='Beto', service='coworking', hours=1)

    assert len(manager.list_sales()) == 2
    assert len(manager.list_sales(start='2024-03-16')) == 1
    assert len(manager.list_sales(end='2024-03-15')) == 1
    assert [r.client for r in manager.list_sales(service='coworking')] == ['Beto']
    assert [r.client for r in manager.list_sales(client='ana')] == ['Ana López']
    with pytest.raises(ValidationError):
        manager.list_sales(start='ayer')


def test_list_sales_filters_by_payment(manager, make_product):
    product = make_product(quantity=50)
    _sale(manager, product, 1)
    _sale(manager, product, 2, client='Beto', payment='card')
    _sale(manager, product, 1, client='Caro', payment='transfer')

    assert [r.client for r in manager.list_sales(payment='card')] == ['Beto']
    assert [r.client for r in manager.list_sales(payment='cash')] == ['Ana López']
    assert manager.list_sales(payment='card', service='coworking') == []


def test_membership_waives_coworking_charge(manager, make_product):
    manager.create_membership({
        'clientName': 'Ana López',
        'membershipType': 'monthly',
        'price': 500,
        'paymentMethod': 'cash',
    })
    soda = make_product(name='Refresco', category='refrigerator', quantity=5, cost=10, price=25)
    record = _sale(manager, soda, 1, service='coworking', hours=3)

    assert record.service_charge == 0
    assert record.membership_applied is True
    assert record.total == 25

    customer = manager.list_customers()[0]
    assert customer.membership_benefits_used == 3
    membership = manager.list_memberships()[0]
    assert membership.usage['totalHours'] == 3


def test_membership_does_not_change_cafeteria_sales(manager, make_product):
    manager.create_membership({
        'clientName': 'Ana López', 'membershipType': 'weekly', 'price': 150, 'paymentMethod': 'card',
    })
    product = make_product()
    record = _sale(manager, product, 1)
    assert record.membership_applied is False
    assert record.total == 20


def test_coworking_sale_without_hours_charges_one_hour(manager, make_product):
    soda = make_product(name='Refresco', category='refrigerator', quantity=5, cost=10, price=25)
    record = _sale(manager, soda, 1, service='coworking')

    assert record.hours == 1
    assert record.service_charge == 58
    assert record.total == 83
    assert record.profit == 73


def _flaky_stock_return(monkeypatch, manager, fail_on_add):
    """adjust_stock que falla en la n-ésima devolución ('add')."""
    repo = manager.container.product_repo
    original = repo.adjust_stock
    calls = {'add': 0}

    def adjust(product_id, amount, op='add', include_inactive=False):
        if op == 'add':
            calls['add'] += 1
            if calls['add'] == fail_on_add:
                raise StorageTimeout('products ocupado')
        return original(product_id, amount, op, include_inactive=include_inactive)

    monkeypatch.setattr(repo, 'adjust_stock', adjust)


def test_failed_stock_return_keeps_sale(manager, make_product, monkeypatch):
    product = make_product(quantity=10)
    record = _sale(manager, product, 3)
    _flaky_stock_return(monkeypatch, manager, fail_on_add=1)

    with pytest.raises(StorageTimeout):
        manager.delete_sale(record.id)

    assert manager.get_sale(record.id).is_deleted is False
    assert manager.get_product(product.id).quantity == 7

    monkeypatch.undo()
    manager.delete_sale(record.id)
    assert manager.get_product(product.id).quantity == 10


def test_partial_stock_return_is_undone(manager, make_product, monkeypatch):
    coffee = make_product(name='Café', quantity=10)
    soda = make_product(name='Refresco', category='refrigerator', quantity=5, cost=10, price=25)
    record = manager.create_sale({
        'client': 'Ana', 'service': 'cafeteria', 'payment': 'cash',
        'products': [
            {'productId': coffee.id, 'quantity': 3},
            {'productId': soda.id, 'quantity': 2},
        ],
    })
    _flaky_stock_return(monkeypatch, manager, fail_on_add=2)

    with pytest.raises(StorageTimeout):
        manager.delete_sale(record.id)

    assert [r.id for r in manager.list_sales()] == [record.id]
    assert manager.get_product(coffee.id).quantity == 7
    assert manager.get_product(soda.id).quantity == 3


@pytest.mark.parametrize('kind', ['json', 'sql'])
def test_concurrent_sales_do_not_lose_updates(kind, tmp_path, clock):
    if kind == 'json':
        backend = JSONFileBackend(str(tmp_path / 'data'))
    else:
        backend = SQLBackend(f"sqlite:///{tmp_path / 'pos.db'}")
    manager = DatabaseManager(Settings(data_path=str(tmp_path / 'data')), backend=backend, clock=clock)
    product = manager.create_product(
        {'name': 'Café', 'category': 'cafeteria', 'quantity': 100, 'cost': 5, 'price': 20}
    )
    failures = []

    def sell():
        try:
            manager.create_sale({
                'client': 'Ana', 'service': 'cafeteria', 'payment': 'cash',
                'products': [{'productId': product.id, 'quantity': 1}],
            })
        except Exception as e:
            failures.append(e)

    threads = [threading.Thread(target=sell) for _ in range(20)]
    try:
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert failures == []
        assert manager.get_product(product.id).quantity == 80
        assert len(manager.list_sales()) == 20
        customers = manager.list_customers()
        assert len(customers) == 1
        assert customers[0].total_visits == 20
        assert customers[0].total_spent == 400
    finally:
        manager.close()
