# -*- coding: utf-8 -*-
"""
Clientes y membresías
"""
from datetime import datetime, timedelta, timezone

import pytest

from conejo_pos.errors import NotFoundError, ValidationError
from conejo_pos.utils.dates import parse_iso

START = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


# ==============================================================================
# CLIENTES
# ==============================================================================

def test_upsert_creates_then_updates_by_name(manager):
    created = manager.upsert_customer({'name': 'Sofía Ruiz', 'email': 'sofia@example.com'})
    updated = manager.upsert_customer({'name': 'sofía ruiz', 'phone': '55 1234 5678'})
    assert updated.id == created.id
    assert updated.email == 'sofia@example.com'
    assert updated.phone == '55 1234 5678'
    assert len(manager.list_customers()) == 1


def test_upsert_by_id(manager):
    created = manager.upsert_customer({'name': 'Sofía'})
    updated = manager.upsert_customer({'id': created.id, 'notes': 'Prefiere ventana'})
    assert updated.name == 'Sofía'
    assert updated.notes == 'Prefiere ventana'
    with pytest.raises(NotFoundError):
        manager.upsert_customer({'id': 'customer_nope', 'notes': 'x'})


@pytest.mark.parametrize('data', [
    {'name': ''},
    {'name': 'Sofía', 'email': 'sin-arroba'},
    {'name': 'Sofía', 'phone': '12'},
])
def test_upsert_validation(manager, data):
    with pytest.raises(ValidationError):
        manager.upsert_customer(data)
    assert manager.list_customers() == []


def test_search_by_name_email_or_phone(manager):
    manager.upsert_customer({'name': 'Sofía Ruiz', 'email': 'sofia@example.com'})
    manager.upsert_customer({'name': 'Pablo', 'phone': '+52 55 9876 5432'})
    assert [c.name for c in manager.search_customers('RUIZ')] == ['Sofía Ruiz']
    assert [c.name for c in manager.search_customers('example.com')] == ['Sofía Ruiz']
    assert [c.name for c in manager.search_customers('9876')] == ['Pablo']


def test_summary_for_new_customer(manager, make_product, clock):
    product = make_product()
    manager.create_sale({
        'client': 'Pablo', 'service': 'cafeteria', 'payment': 'card',
        'products': [{'productId': product.id, 'quantity': 2}],
    })
    customer = manager.list_customers()[0]

    clock.advance(days=40)
    summary = manager.get_customer_summary(customer.id)
    assert summary['segment'] == 'new'
    assert summary['preferredPayment'] == 'card'
    assert summary['favoriteProducts'][0]['productId'] == product.id
    assert summary['daysSinceLastVisit'] == 40
    assert summary['isAtRisk'] is True
    assert summary['hasActiveMembership'] is False


def test_soft_deleted_customer_is_hidden(manager):
    customer = manager.upsert_customer({'name': 'Sofía'})
    manager.soft_delete_customer(customer.id, actor='admin')
    assert manager.list_customers() == []
    with pytest.raises(NotFoundError):
        manager.get_customer(customer.id)


def test_customer_stats(memory_manager):
    memory_manager.upsert_customer({'name': 'A'})
    memory_manager.create_membership({
        'clientName': 'B', 'membershipType': 'monthly', 'price': 500, 'paymentMethod': 'cash',
    })
    stats = memory_manager.get_customer_stats()
    assert stats['totalCustomers'] == 2
    assert stats['activeMemberships'] == 1
    assert stats['totalSpent'] == 500
    assert stats['segments'] == {'new': 1, 'vip': 1}


# ==============================================================================
# MEMBRESÍAS
# ==============================================================================

def _membership(manager, **extra):
    data = {
        'clientName': 'Ana',
        'membershipType': 'monthly',
        'price': 500,
        'paymentMethod': 'cash',
        **extra,
    }
    return manager.create_membership(data, actor='admin')


def test_create_membership_activates_customer(manager):
    membership = _membership(manager, email='ana@example.com')

    assert membership.status == 'active'
    assert parse_iso(membership.end_date) == START + timedelta(days=30)
    assert membership.payment_history[0]['amount'] == 500
    assert membership.plan == 'monthly'

    customer = manager.get_customer(membership.customer_id)
    assert customer.name == 'Ana'
    assert customer.email == 'ana@example.com'
    assert customer.membership_status == 'active'
    assert customer.membership_type == 'monthly'
    assert customer.has_paid_membership is True
    # El pago cuenta como visita
    assert customer.total_visits == 1
    assert customer.loyalty_points == 500


@pytest.mark.parametrize('membership_type, days', [
    ('daily', 1), ('weekly', 7), ('monthly', 30), ('annual', 365),
])
def test_membership_duration_by_type(memory_manager, membership_type, days):
    membership = _membership(memory_manager, membershipType=membership_type)
    assert parse_iso(membership.end_date) - parse_iso(membership.start_date) == timedelta(days=days)


@pytest.mark.parametrize('overrides', [
    {'clientName': ''},
    {'membershipType': 'lifetime'},
    {'price': -1},
    {'paymentMethod': 'crypto'},
    {'startDate': 'mañana'},
    {'email': 'mal'},
])
def test_create_membership_validation(memory_manager, overrides):
    with pytest.raises(ValidationError):
        _membership(memory_manager, **overrides)
    assert memory_manager.list_memberships() == []
    assert memory_manager.list_customers() == []


def test_renew_extends_from_current_end(manager, clock):
    membership = _membership(manager)
    clock.advance(days=10)
    renewed = manager.renew_membership(membership.id, 'card', amount=450)

    assert parse_iso(renewed.end_date) == START + timedelta(days=60)
    assert len(renewed.payment_history) == 2
    assert renewed.payment_history[1]['amount'] == 450
    assert renewed.payment_method == 'card'


def test_renew_after_expiry_starts_today(manager, clock):
    membership = _membership(manager, membershipType='weekly', price=150)
    clock.advance(days=9)
    manager.expire_memberships()
    renewed = manager.renew_membership(membership.id, 'cash')

    assert renewed.status == 'active'
    assert parse_iso(renewed.start_date) == clock()
    assert parse_iso(renewed.end_date) == clock() + timedelta(days=7)
    assert manager.get_customer(membership.customer_id).membership_status == 'active'


def test_cancel_membership(manager):
    membership = _membership(manager)
    cancelled = manager.cancel_membership(membership.id, 'mudanza')

    assert cancelled.status == 'cancelled'
    assert 'Cancelada: mudanza' in cancelled.notes
    assert manager.get_customer(membership.customer_id).membership_status == 'expired'
    with pytest.raises(ValidationError):
        manager.cancel_membership(membership.id, 'otra vez')
    with pytest.raises(ValidationError):
        manager.renew_membership(membership.id, 'cash')


def test_expire_overdue(manager, clock):
    daily = _membership(manager, clientName='Dani', membershipType='daily', price=80)
    monthly = _membership(manager, clientName='Eva')
    clock.advance(days=2)

    expired = manager.expire_memberships()
    assert [m.id for m in expired] == [daily.id]
    assert manager.list_memberships(status='expired')[0].id == daily.id
    assert manager.list_memberships(status='active')[0].id == monthly.id
    assert manager.get_customer(daily.customer_id).membership_status == 'expired'
    assert manager.expire_memberships() == []


def test_list_memberships_by_customer(manager):
    first = _membership(manager, clientName='Ana')
    _membership(manager, clientName='Beto')
    listed = manager.list_memberships(customer_id=first.customer_id)
    assert [m.id for m in listed] == [first.id]
