# ==============================================================================
# INTERFACES DE REPOSITORIOS Y BACKENDS
# ==============================================================================
#
# Contratos (protocolos) de los que dependen repositorios y servicios.
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los repositorios dependen de IStorageBackend, NO de JSON o SQL
#    - Cambiar JSON → SQL solo requiere DATABASE_URL
#
# 2. TESTING
#    - MemoryBackend implementa el mismo contrato
#    - Los tests corren la misma suite sobre los tres backends
#
# ==============================================================================

from typing import (
    Any,
    ContextManager,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    runtime_checkable,
)


# ==============================================================================
# BACKEND
# ==============================================================================

@runtime_checkable
class IStorageBackend(Protocol):
    """
    Almacén de colecciones ordenadas de documentos (dicts).
    Implementado por: JSONFileBackend, SQLBackend, MemoryBackend.
    """

    def read_all(self, collection: str) -> List[Dict[str, Any]]:
        """Lee la colección completa. Si no existe la crea vacía y retorna []."""
        ...

    def write_all(self, collection: str, records: List[Dict[str, Any]]) -> None:
        """Reemplaza la colección completa de forma atómica."""
        ...

    def locked(self, collection: str) -> ContextManager[None]:
        """Serializa leer-modificar-escribir sobre una colección."""
        ...

    def collections(self) -> List[str]:
        """Nombres de colecciones existentes."""
        ...

    def close(self) -> None:
        """Libera recursos (conexiones, handles)."""
        ...


# ==============================================================================
# REPOSITORIOS
# ==============================================================================

@runtime_checkable
class IRepository(Protocol):
    """
    Operaciones mínimas de cualquier repositorio de entidades.
    """

    def get_all(
        self,
        filters: Optional[Dict[str, Any]] = None,
        include_deleted: bool = False
    ) -> List[Any]:
        ...

    def get_by_id(self, entity_id: str, include_deleted: bool = False) -> Optional[Any]:
        ...

    def require(self, entity_id: str) -> Any:
        """Como get_by_id pero lanza NotFoundError."""
        ...

    def create(self, data: Dict[str, Any]) -> Any:
        ...

    def update(self, entity_id: str, partial: Dict[str, Any]) -> Any:
        ...

    def soft_delete(self, entity_id: str, actor: Optional[str] = None) -> Any:
        ...

    def purge(self, entity_id: str) -> bool:
        """Eliminación permanente (explícita)."""
        ...


@runtime_checkable
class IProductRepository(IRepository, Protocol):
    """
    Interfaz para el repositorio de productos.
    """

    def adjust_stock(self, product_id: str, amount: int, op: str) -> Tuple[Any, int]:
        """Ajusta stock (add | subtract | set). Retorna (producto, faltante)."""
        ...

    def get_low_stock(self) -> List[Any]:
        ...

    def get_by_category(self, category: str) -> List[Any]:
        ...
