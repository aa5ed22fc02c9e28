# ==============================================================================
# BACKEND EN MEMORIA
# ==============================================================================
# Diccionario de listas dentro del proceso. Usado en tests y como
# fallback efímero. Copia profunda en lectura y escritura para que nadie
# comparta referencias con el almacenamiento.
# ==============================================================================

import copy
from typing import Any, Dict, List

from .base import LockingBackend


class MemoryBackend(LockingBackend):
    """Backend volátil con el mismo contrato que los persistentes."""

    def __init__(self, timeout: float = 10.0):
        super().__init__(timeout)
        self._data: Dict[str, List[Dict[str, Any]]] = {}

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        with self.locked(collection):
            records = self._data.setdefault(collection, [])
            return copy.deepcopy(records)

    def write_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        with self.locked(collection):
            self._data[collection] = copy.deepcopy(list(records))

    def collections(self) -> List[str]:
        return sorted(self._data.keys())

    def close(self) -> None:
        pass
