# ==============================================================================
# BACKEND BASE - Locks por colección
# ==============================================================================
# Todos los backends serializan el ciclo leer-modificar-escribir de una
# colección con un RLock propio de esa colección. El lock se adquiere con
# tiempo límite: si no se obtiene a tiempo se lanza StorageTimeout.
#
# El backend de archivos es de UN solo proceso: los locks no protegen
# contra otro proceso escribiendo los mismos JSON.
# ==============================================================================

import re
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

from conejo_pos.errors import StorageError, StorageTimeout
from conejo_pos.utils.logger import get_logger

logger = get_logger("StorageBackend")

# Nombres de colección válidos (también son nombres de archivo/tabla)
COLLECTION_NAME_RE = re.compile(r'^[a-z_]+$')


class LockingBackend:
    """
    Base común: validación de nombres y locks reentrantes por colección.

    Las subclases implementan read_all / write_all / collections / close
    y envuelven cada operación con self.locked(collection).
    """

    def __init__(self, timeout: float = 10.0):
        """
        Args:
            timeout: Segundos máximos de espera por el lock de una colección
        """
        self.timeout = timeout
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _check_name(self, collection: str) -> str:
        if not COLLECTION_NAME_RE.match(collection or ''):
            raise StorageError(f"Nombre de colección inválido: {collection!r}")
        return collection

    def _lock_for(self, collection: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(collection)
            if lock is None:
                lock = threading.RLock()
                self._locks[collection] = lock
            return lock

    @contextmanager
    def locked(self, collection: str) -> Iterator[None]:
        """
        Adquiere el lock exclusivo de una colección.

        Raises:
            StorageTimeout: Si no se obtiene el lock en self.timeout segundos
        """
        lock = self._lock_for(self._check_name(collection))
        if not lock.acquire(timeout=self.timeout):
            logger.error(f"Timeout esperando lock de '{collection}' ({self.timeout}s)")
            raise StorageTimeout(f"Timeout esperando la colección '{collection}'")
        try:
            yield
        finally:
            lock.release()
