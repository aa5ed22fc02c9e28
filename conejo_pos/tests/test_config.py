# -*- coding: utf-8 -*-
"""
Configuración desde el entorno y compatibilidad con datos legacy
"""
import pytest

from conejo_pos.config import Settings
from conejo_pos.models.entities import CoworkingSession, Customer, Product, SaleRecord


def test_settings_defaults(monkeypatch):
    for name in ('DATABASE_URL', 'DATA_PATH', 'COWORKING_HOURLY_RATE', 'DAY_RATE', 'ENV'):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env(dotenv=False)

    assert settings.data_path == './data'
    assert settings.coworking_hourly_rate == 58.0
    assert settings.session_hourly_rate == 72.0
    assert settings.day_rate == 225.0
    assert settings.day_rate_threshold_hours == 4.0
    assert not settings.use_relational
    assert not settings.is_production


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv('DATABASE_URL', 'sqlite:///pos.db')
    monkeypatch.setenv('DAY_RATE', '250')
    monkeypatch.setenv('ENV', 'Production')
    monkeypatch.setenv('BACKUP_MAX', '10')
    settings = Settings.from_env(dotenv=False)

    assert settings.use_relational
    assert settings.day_rate == 250.0
    assert settings.is_production
    assert settings.backup_max == 10


def test_invalid_number_in_env(monkeypatch):
    monkeypatch.setenv('DAY_RATE', 'caro')
    with pytest.raises(RuntimeError):
        Settings.from_env(dotenv=False)


def test_legacy_values_are_normalized():
    product = Product.from_dict({'_id': 'p1', 'name': 'Agua', 'category': 'Refrigerador'})
    assert product.id == 'p1'
    assert product.category == 'refrigerator'

    record = SaleRecord.from_dict({'id': 'r1', 'client': 'Ana', 'payment': 'efectivo'})
    assert record.payment == 'cash'

    session = CoworkingSession.from_dict({
        'id': 's1', 'clientName': 'Beto', 'startTime': '2024-03-15T10:00:00Z', 'status': 'completed',
    })
    assert session.client == 'Beto'
    assert session.status == 'closed'


def test_customer_tier_follows_points():
    customer = Customer.from_dict({
        'id': 'c1', 'name': 'Ana', 'loyaltyPoints': 5200, 'loyaltyTier': 'bronze',
        'paymentStatistics': {'efectivo': 2, 'card': 1},
    })
    assert customer.loyalty_tier == 'gold'
    assert customer.payment_statistics['cash'] == 2
    assert customer.payment_statistics['card'] == 1
