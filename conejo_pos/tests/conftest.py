# -*- coding: utf-8 -*-
"""
Fixtures compartidos: reloj fijo y DatabaseManager sobre los tres backends.
"""
import os

# Sin logs/app.log durante los tests
os.environ.setdefault('LOG_TO_FILE', '0')

from datetime import datetime, timedelta, timezone

import pytest

from conejo_pos.config import Settings
from conejo_pos.database_manager import DatabaseManager
from conejo_pos.main import create_app
from conejo_pos.repositories.backends import JSONFileBackend, MemoryBackend, SQLBackend

# Viernes 15 de marzo de 2024, 12:00 UTC
START = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Reloj manual: los servicios lo llaman como a utcnow()."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


def build_backend(kind, tmp_path):
    if kind == 'memory':
        return MemoryBackend()
    if kind == 'json':
        return JSONFileBackend(str(tmp_path / 'data'))
    return SQLBackend('sqlite://')


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(params=['memory', 'json', 'sql'])
def backend(request, tmp_path):
    return build_backend(request.param, tmp_path)


@pytest.fixture
def manager(backend, clock, tmp_path):
    m = DatabaseManager(Settings(data_path=str(tmp_path / 'data')), backend=backend, clock=clock)
    yield m
    m.close()


@pytest.fixture
def memory_manager(clock, tmp_path):
    """Manager rápido para pruebas que no dependen del backend."""
    m = DatabaseManager(Settings(data_path=str(tmp_path / 'data')), backend=MemoryBackend(), clock=clock)
    yield m
    m.close()


@pytest.fixture
def make_product(manager):
    def _make(name='Café americano', category='cafeteria', quantity=10, cost=5, price=20, **extra):
        return manager.create_product({
            'name': name,
            'category': category,
            'quantity': quantity,
            'cost': cost,
            'price': price,
            **extra,
        }, actor='tester')
    return _make


@pytest.fixture
def client(memory_manager):
    app = create_app(manager=memory_manager)
    app.config['TESTING'] = True
    with app.test_client() as c:
        yield c
