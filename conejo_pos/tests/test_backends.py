# -*- coding: utf-8 -*-
"""
Contrato de los backends de almacenamiento (JSON, SQL y memoria)
"""
import os
import threading

import pytest

from conejo_pos.errors import StorageError, StorageTimeout
from conejo_pos.repositories.backends import JSONFileBackend, MemoryBackend, SQLBackend


def test_missing_collection_reads_empty(backend):
    assert backend.read_all('products') == []
    assert 'products' in backend.collections()


def test_write_all_replaces_collection_in_order(backend):
    backend.write_all('records', [{'id': 'a', 'n': 1}, {'id': 'b', 'n': 2}])
    backend.write_all('records', [{'id': 'c', 'n': 3}, {'id': 'a', 'n': 1}])
    assert [d['id'] for d in backend.read_all('records')] == ['c', 'a']


def test_nested_documents_survive(backend):
    doc = {'id': 'x', 'products': [{'productId': 'p', 'quantity': 2}], 'usage': {'totalHours': 1.5}}
    backend.write_all('memberships', [doc])
    assert backend.read_all('memberships') == [doc]


def test_reads_are_copies(backend):
    backend.write_all('products', [{'id': 'p', 'quantity': 1}])
    docs = backend.read_all('products')
    docs[0]['quantity'] = 99
    assert backend.read_all('products')[0]['quantity'] == 1


def test_invalid_collection_name(backend):
    with pytest.raises(StorageError):
        backend.read_all('../etc')


def test_lock_timeout_raises_storage_timeout():
    backend = MemoryBackend(timeout=0.05)
    acquired = threading.Event()
    release = threading.Event()

    def hold():
        with backend.locked('products'):
            acquired.set()
            release.wait(2)

    worker = threading.Thread(target=hold)
    worker.start()
    try:
        acquired.wait(2)
        with pytest.raises(StorageTimeout):
            backend.read_all('products')
    finally:
        release.set()
        worker.join()


def test_lock_is_reentrant():
    backend = MemoryBackend(timeout=0.05)
    with backend.locked('products'):
        backend.write_all('products', [{'id': 'p'}])
        assert backend.read_all('products') == [{'id': 'p'}]


def test_json_backend_writes_one_file_per_collection(tmp_path):
    backend = JSONFileBackend(str(tmp_path))
    backend.write_all('coworking_sessions', [{'id': 's1'}])
    assert os.path.exists(tmp_path / 'coworking_sessions.json')
    assert not os.path.exists(tmp_path / 'coworking_sessions.json.tmp')
    assert backend.data_files() == ['coworking_sessions.json']


def test_json_backend_corrupt_file_is_not_reset(tmp_path):
    (tmp_path / 'products.json').write_text('{not json', encoding='utf-8')
    backend = JSONFileBackend(str(tmp_path))
    with pytest.raises(StorageError):
        backend.read_all('products')
    assert (tmp_path / 'products.json').read_text(encoding='utf-8') == '{not json'


def test_json_backend_rejects_non_list(tmp_path):
    (tmp_path / 'products.json').write_text('{"id": 1}', encoding='utf-8')
    with pytest.raises(StorageError):
        JSONFileBackend(str(tmp_path)).read_all('products')


def test_sql_backend_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'conejo.db'}"
    first = SQLBackend(url)
    first.write_all('products', [{'id': 'p1', 'name': 'Agua'}])
    first.close()

    second = SQLBackend(url)
    assert second.read_all('products') == [{'id': 'p1', 'name': 'Agua'}]
    second.close()
