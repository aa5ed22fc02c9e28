# ==============================================================================
# BACKEND DE ARCHIVOS JSON
# ==============================================================================
# Un archivo <colección>.json por colección dentro de la carpeta de datos.
# Cada archivo contiene una LISTA de documentos en orden de inserción.
#
# Escritura atómica: se escribe <archivo>.tmp y se reemplaza con
# os.replace. Un archivo corrupto NO se resetea: se lanza StorageError
# para no perder datos en silencio.
# ==============================================================================

import json
import os
from typing import Any, Dict, List

from conejo_pos.errors import StorageError
from conejo_pos.utils.logger import get_logger

from .base import COLLECTION_NAME_RE, LockingBackend

logger = get_logger("JSONFileBackend")


class JSONFileBackend(LockingBackend):
    """
    Backend de documentos sobre archivos JSON.

    Uso:
        backend = JSONFileBackend('/app/data')
        records = backend.read_all('products')
    """

    def __init__(self, data_path: str, timeout: float = 10.0):
        """
        Args:
            data_path: Carpeta donde viven los archivos JSON
            timeout: Segundos máximos de espera por colección
        """
        super().__init__(timeout)
        self.data_path = os.path.abspath(data_path)
        os.makedirs(self.data_path, exist_ok=True)

    def file_path(self, collection: str) -> str:
        """Ruta absoluta del archivo de una colección."""
        return os.path.join(self.data_path, f"{self._check_name(collection)}.json")

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        """
        Lee todos los documentos de una colección.
        Si el archivo no existe, lo crea vacío y retorna [].

        Raises:
            StorageError: Si el archivo es ilegible o no contiene una lista
        """
        with self.locked(collection):
            path = self.file_path(collection)
            if not os.path.exists(path):
                self._write_raw(path, [])
                return []
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Archivo corrupto {path}: {e}")
                raise StorageError(f"Archivo de datos corrupto: {os.path.basename(path)}") from e
            except OSError as e:
                logger.error(f"No se pudo leer {path}: {e}")
                raise StorageError(f"No se pudo leer {os.path.basename(path)}") from e

            if not isinstance(data, list):
                raise StorageError(f"{os.path.basename(path)} no contiene una lista")
            return data

    def write_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        """Reemplaza la colección completa (atómico y sincrónico)."""
        with self.locked(collection):
            self._write_raw(self.file_path(collection), list(records))

    def _write_raw(self, path: str, data: Any) -> None:
        # Escribir a archivo temporal primero para atomicidad
        temp_path = path + '.tmp'
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            logger.error(f"No se pudo escribir {path}: {e}")
            raise StorageError(f"No se pudo escribir {os.path.basename(path)}") from e

    def collections(self) -> List[str]:
        names = []
        for item in sorted(os.listdir(self.data_path)):
            # Archivos ajenos (copias, "productos (1).json"...) no son colecciones
            if item.endswith('.json') and COLLECTION_NAME_RE.match(item[:-5]):
                names.append(item[:-5])
        return names

    def data_files(self) -> List[str]:
        """Nombres de archivo de todas las colecciones existentes."""
        return [f"{name}.json" for name in self.collections()]

    def close(self) -> None:
        pass
