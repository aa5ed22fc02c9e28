# ==============================================================================
# ERRORES DEL DOMINIO
# ==============================================================================
# Jerarquía única de excepciones del núcleo. Los repositorios y servicios
# las lanzan tal cual; la capa HTTP decide el código de respuesta:
#   ValidationError → 400
#   NotFoundError   → 404
#   StorageTimeout  → 503
#   StorageError    → 500
# ==============================================================================

from typing import List, Union


class ConejoError(Exception):
    """Excepción base del sistema."""
    pass


class ValidationError(ConejoError):
    """
    Datos de entrada faltantes o inválidos.
    Siempre se lanza ANTES de cualquier escritura.
    """

    def __init__(self, errors: Union[str, List[str]]):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__('; '.join(self.errors))


class NotFoundError(ConejoError):
    """La entidad referenciada no existe (o fue eliminada)."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} no encontrado")


class StorageError(ConejoError):
    """Fallo de lectura/escritura en el backend de almacenamiento."""
    pass


class StorageTimeout(StorageError):
    """El backend no respondió dentro del tiempo límite."""
    pass


class InsufficientStock(ConejoError):
    """
    Advertencia de stock agotado.

    NO se lanza fuera de una venta: la operación se completa con el stock
    en cero y esta advertencia se registra en el log y en el registro.
    """

    def __init__(
        self,
        product_id: str,
        name: str,
        requested: int,
        available: int
    ):
        self.product_id = product_id
        self.name = name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Stock agotado para {name or product_id}: "
            f"solicitado {requested}, disponible {available}"
        )

    @property
    def shortfall(self) -> int:
        return max(0, self.requested - self.available)

    def to_dict(self) -> dict:
        return {
            'productId': self.product_id,
            'name': self.name,
            'requested': self.requested,
            'available': self.available,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'InsufficientStock':
        return cls(
            product_id=data.get('productId', ''),
            name=data.get('name', ''),
            requested=data.get('requested', 0),
            available=data.get('available', 0)
        )

