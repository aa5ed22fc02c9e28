# -*- coding: utf-8 -*-
"""
Reportes financieros, cortes de caja y gastos
"""
import pytest

from conejo_pos.errors import NotFoundError, ValidationError


@pytest.fixture
def two_sales(manager, make_product):
    """Venta de cafetería (60 efectivo) y de coworking (141 tarjeta)."""
    coffee = make_product(name='Café', quantity=10, cost=5, price=20)
    soda = make_product(name='Refresco', category='refrigerator', quantity=10, cost=10, price=25)
    cafeteria = manager.create_sale({
        'client': 'Ana', 'service': 'cafeteria', 'payment': 'cash',
        'products': [{'productId': coffee.id, 'quantity': 3}],
    })
    coworking = manager.create_sale({
        'client': 'Beto', 'service': 'coworking', 'payment': 'card', 'hours': 2,
        'products': [{'productId': soda.id, 'quantity': 1}],
    })
    return cafeteria, coworking


# ==============================================================================
# REPORTES
# ==============================================================================

def test_financial_report(manager, two_sales):
    manager.create_expense({'amount': 50, 'description': 'Servilletas', 'category': 'supplies'})
    report = manager.get_financial_report('2024-03-15', '2024-03-15')

    assert report['income']['total'] == 201
    assert report['income']['byService'] == {'cafeteria': 60, 'coworking': 141}
    assert report['income']['byPayment'] == {'cash': 60, 'card': 141}
    assert report['expenses']['total'] == 50
    assert report['expenses']['byCategory'] == {'supplies': 50}
    assert report['profit']['gross'] == 176
    assert report['profit']['net'] == 151
    assert report['profit']['margin'] == 75.12
    assert report['counts'] == {'records': 2, 'expenses': 1}
    assert report['averageTicket'] == 100.5
    assert report['topProducts'][0]['quantity'] == 3


def test_report_excludes_deleted_records(manager, two_sales):
    cafeteria, _ = two_sales
    manager.delete_sale(cafeteria.id)
    report = manager.get_financial_report()
    assert report['income']['total'] == 141
    assert report['counts']['records'] == 1


def test_report_range_and_validation(manager, two_sales, clock):
    assert manager.get_financial_report('2024-03-16')['income']['total'] == 0
    with pytest.raises(ValidationError):
        manager.get_financial_report('2024-03-16', '2024-03-01')


def test_empty_report_has_zero_margin(manager):
    report = manager.get_financial_report()
    assert report['income']['total'] == 0
    assert report['profit']['margin'] == 0
    assert report['averageTicket'] == 0


def test_daily_stats(manager, two_sales, clock):
    clock.advance(days=2)
    stats = manager.get_daily_stats(3)
    assert [d['date'] for d in stats] == ['2024-03-15', '2024-03-16', '2024-03-17']
    assert stats[0]['income'] == 201
    assert stats[0]['records'] == 2
    assert stats[1]['income'] == 0
    with pytest.raises(ValidationError):
        manager.get_daily_stats(0)


def test_today_summary(manager, two_sales):
    manager.create_expense({'amount': 21, 'description': 'Gas', 'category': 'fixed'})
    summary = manager.get_today_summary()
    assert summary['date'] == '2024-03-15'
    assert summary['totalIncome'] == 201
    assert summary['expensesTotal'] == 21
    assert summary['netCash'] == 180
    assert summary['paymentBreakdown']['card'] == {'count': 1, 'amount': 141}


# ==============================================================================
# CORTES DE CAJA
# ==============================================================================

def test_cash_cut_aggregates_records(manager, two_sales):
    manager.create_expense({'amount': 50, 'description': 'Servilletas', 'category': 'supplies'})
    cut = manager.create_cash_cut(notes='cierre', actor='caja1')

    assert cut.cut_type == 'manual'
    assert cut.total_records == 2
    assert cut.total_income == 201
    assert cut.total_cost == 25
    assert cut.total_profit == 176
    assert cut.average_ticket == 100.5
    assert cut.total_tips == 0
    assert cut.payment_breakdown == {
        'cash': {'count': 1, 'amount': 60},
        'card': {'count': 1, 'amount': 141},
    }
    assert cut.service_breakdown['coworking'] == {'count': 1, 'amount': 141}
    assert len(cut.top_products) == 2
    assert cut.expenses_total == 50
    assert cut.net_cash == 151
    assert cut.created_by == 'caja1'


def test_next_cash_cut_starts_where_previous_ended(manager, two_sales, make_product, clock):
    first = manager.create_cash_cut()
    clock.advance(hours=1)
    product = make_product(name='Galleta', category='food', price=15, cost=4)
    manager.create_sale({
        'client': 'Ana', 'service': 'cafeteria', 'payment': 'transfer',
        'products': [{'productId': product.id, 'quantity': 1}],
    })
    clock.advance(minutes=5)
    second = manager.create_cash_cut(cut_type='automatic')

    assert second.start_date == first.end_date
    assert second.total_records == 1
    assert second.total_income == 15
    assert second.cut_type == 'automatic'
    assert [c.id for c in manager.list_cash_cuts()] == [second.id, first.id]
    assert [c.id for c in manager.list_cash_cuts(limit=1)] == [second.id]


def test_cash_cut_validation_and_delete(manager):
    with pytest.raises(ValidationError):
        manager.create_cash_cut(cut_type='weekly')
    with pytest.raises(ValidationError):
        manager.create_cash_cut(start='2024-03-16', end='2024-03-15')

    cut = manager.create_cash_cut()
    assert cut.total_records == 0
    manager.delete_cash_cut(cut.id)
    assert manager.list_cash_cuts() == []
    with pytest.raises(NotFoundError):
        manager.get_cash_cut(cut.id)


# ==============================================================================
# GASTOS
# ==============================================================================

def _expense(manager, **extra):
    data = {'amount': 1200, 'description': 'Renta', 'category': 'fixed', **extra}
    return manager.create_expense(data, actor='admin')


def test_create_expense_defaults(manager):
    expense = _expense(manager)
    assert expense.id.startswith('expense_')
    assert expense.status == 'paid'
    assert expense.type == 'one_time'
    assert expense.payment_method == 'cash'
    assert expense.date.startswith('2024-03-15')
    assert expense.created_by == 'admin'


@pytest.mark.parametrize('overrides', [
    {'amount': 0},
    {'amount': -10},
    {'amount': True},
    {'description': ''},
    {'category': 'fun'},
    {'paymentMethod': 'cheque'},
    {'status': 'lost'},
    {'type': 'weekly'},
    {'date': '15/03/2024'},
])
def test_expense_validation(memory_manager, overrides):
    with pytest.raises(ValidationError):
        _expense(memory_manager, **overrides)
    assert memory_manager.list_expenses() == []


def test_update_and_delete_expense(manager):
    expense = _expense(manager)
    updated = manager.update_expense(expense.id, {'amount': 1300.456, 'status': 'pending'})
    assert updated.amount == 1300.46
    assert updated.status == 'pending'
    with pytest.raises(ValidationError):
        manager.update_expense(expense.id, {'amount': 0})

    manager.delete_expense(expense.id, actor='admin')
    assert manager.list_expenses() == []


def test_list_expenses_and_stats(manager, clock):
    _expense(manager)
    _expense(manager, amount=300, description='Café en grano', category='supplies', status='pending')
    clock.advance(days=3)
    _expense(manager, amount=100, description='Volantes', category='marketing')

    assert len(manager.list_expenses()) == 3
    assert [e.description for e in manager.list_expenses(category='supplies')] == ['Café en grano']
    assert [e.description for e in manager.list_expenses(status='pending')] == ['Café en grano']
    assert len(manager.list_expenses(start='2024-03-18')) == 1

    stats = manager.get_expense_stats()
    assert stats['total'] == 1600
    assert stats['count'] == 3
    assert stats['byCategory'] == {'fixed': 1200, 'supplies': 300, 'marketing': 100}
    assert stats['byStatus'] == {'paid': 1300, 'pending': 300}
