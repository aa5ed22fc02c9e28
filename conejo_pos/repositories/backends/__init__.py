# ==============================================================================
# BACKENDS DE ALMACENAMIENTO
# ==============================================================================
# Tres implementaciones intercambiables del mismo contrato (IStorageBackend):
# ├── json_backend.py   → un archivo JSON por colección
# ├── sql_backend.py    → una tabla por colección (SQLAlchemy)
# └── memory_backend.py → dict en memoria (tests)
# ==============================================================================

from .base import LockingBackend, COLLECTION_NAME_RE
from .json_backend import JSONFileBackend
from .sql_backend import SQLBackend
from .memory_backend import MemoryBackend

__all__ = [
    'LockingBackend',
    'COLLECTION_NAME_RE',
    'JSONFileBackend',
    'SQLBackend',
    'MemoryBackend',
]
