# -*- coding: utf-8 -*-
"""
Backups ZIP del backend de archivos JSON
"""
import os
import zipfile

import pytest

from conejo_pos.config import Settings
from conejo_pos.database_manager import DatabaseManager
from conejo_pos.repositories.backends import JSONFileBackend, SQLBackend
from conejo_pos.services.backup_service import BackupService, run_startup_backup


@pytest.fixture
def json_manager(tmp_path, clock):
    backend = JSONFileBackend(str(tmp_path / 'data'))
    m = DatabaseManager(Settings(data_path=backend.data_path, backup_max=3), backend=backend, clock=clock)
    m.create_product({'name': 'Café', 'category': 'cafeteria', 'quantity': 3, 'price': 20})
    yield m
    m.close()


def test_backup_zips_collection_files(json_manager):
    result = json_manager.run_backup()

    assert result['success'] is True
    assert result['filesAdded'] >= 1
    assert result['backupPath'].endswith('backup_2024-03-15.zip')
    with zipfile.ZipFile(result['backupPath']) as zf:
        assert 'products.json' in zf.namelist()
    assert result['rotation'] == {'deletedCount': 0, 'remainingCount': 1}


def test_backup_once_per_day(json_manager, clock):
    json_manager.run_backup()
    again = json_manager.run_backup()
    assert again['message'] == 'Backup del día ya existe'
    assert again['filesAdded'] == 0

    forced = json_manager.run_backup(force=True)
    assert forced['filesAdded'] >= 1

    clock.advance(days=1)
    assert json_manager.run_backup()['backupPath'].endswith('backup_2024-03-16.zip')


def test_rotation_keeps_newest(json_manager):
    service = json_manager.container.backup_service
    for day in ('2024-03-01', '2024-03-02', '2024-03-03', '2024-03-04'):
        with zipfile.ZipFile(os.path.join(service.backup_root, f'backup_{day}.zip'), 'w') as zf:
            zf.writestr('products.json', '[]')
    # Archivos ajenos no cuentan
    open(os.path.join(service.backup_root, 'notas.txt'), 'w').close()

    result = service.run_daily_backup()

    assert result['backup']['success'] is True
    assert result['rotation'] == {'deletedCount': 2, 'remainingCount': 3}
    status = service.get_backup_status()
    assert [b['date'] for b in status['backups']] == ['2024-03-15', '2024-03-04', '2024-03-03']
    assert status['todayExists'] is True
    assert status['maxBackups'] == 3


def test_backup_without_files(tmp_path, clock):
    service = BackupService(JSONFileBackend(str(tmp_path / 'vacio')), clock=clock)
    result = service.create_backup()
    assert result['success'] is False
    assert result['filesAdded'] == 0


def test_relational_backend_skips_backup(tmp_path, clock):
    m = DatabaseManager(Settings(data_path=str(tmp_path)), backend=SQLBackend('sqlite://'), clock=clock)
    try:
        assert m.container.backup_service is None
        assert m.run_backup() is None
    finally:
        m.close()


def test_startup_backup(json_manager):
    run_startup_backup(None)
    run_startup_backup(json_manager.container.backup_service)
    assert json_manager.container.backup_service.get_backup_status()['todayExists'] is True


def test_stray_json_files_are_not_collections(json_manager):
    backend = json_manager.backend
    with open(os.path.join(backend.data_path, 'products (copia).json'), 'w') as f:
        f.write('[]')

    assert 'products (copia)' not in backend.collections()
    result = json_manager.run_backup()
    assert result['success'] is True
    with zipfile.ZipFile(result['backupPath']) as zf:
        assert 'products (copia).json' not in zf.namelist()
