# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Colección 'products'. La eliminación lógica apaga isActive (no isDeleted).
# El stock nunca queda negativo: restar o fijar por debajo de cero deja
# la cantidad en 0 y reporta el faltante.
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import Product, normalize_category

from .base import BaseRepository

# Operaciones de ajuste de stock válidas
STOCK_OPERATIONS = ('add', 'subtract', 'set')


class ProductRepository(BaseRepository[Product]):
    """Repositorio de inventario."""

    collection = 'products'
    entity_cls = Product
    id_prefix = 'product'
    entity_name = 'Producto'

    def _is_deleted(self, doc: Dict[str, Any]) -> bool:
        return doc.get('isActive', True) is False

    def _deleted_fields(self, actor: Optional[str]) -> Dict[str, Any]:
        return {'isActive': False, 'lastModifiedBy': actor}

    def adjust_stock(
        self,
        product_id: str,
        amount: int,
        op: str = 'subtract',
        include_inactive: bool = False
    ) -> Tuple[Product, int]:
        """
        Ajusta el stock de un producto de forma atómica.

        Args:
            product_id: ID del producto
            amount: Cantidad (entero >= 0)
            op: 'add' | 'subtract' | 'set'
            include_inactive: Permitir ajustar productos desactivados
                (devoluciones de stock)

        Returns:
            Tupla (producto actualizado, faltante). El faltante es > 0 solo
            cuando se pidió restar/fijar por debajo de cero.

        Raises:
            ValidationError: Operación o cantidad inválida
            NotFoundError: Si el producto no existe o está inactivo
        """
        if op not in STOCK_OPERATIONS:
            raise ValidationError(f"Operación de stock inválida: {op}")
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("La cantidad de stock debe ser un entero")

        shortfall = 0

        def change(product: Product) -> None:
            nonlocal shortfall
            if op == 'add':
                if amount < 0:
                    raise ValidationError("No se puede agregar una cantidad negativa")
                product.quantity += amount
            elif op == 'subtract':
                if amount < 0:
                    raise ValidationError("No se puede restar una cantidad negativa")
                shortfall = max(0, amount - product.quantity)
                product.quantity = max(0, product.quantity - amount)
            else:
                shortfall = max(0, -amount)
                product.quantity = max(0, amount)

        product = self.mutate(product_id, change, include_deleted=include_inactive)
        return product, shortfall

    def get_low_stock(self) -> List[Product]:
        """Productos activos con quantity <= lowStockAlert."""
        return [p for p in self.get_all() if p.is_low_stock]

    def get_by_category(self, category: str) -> List[Product]:
        wanted = normalize_category(category)
        return [p for p in self.get_all() if p.category == wanted]

    def get_by_name(self, name: str) -> Optional[Product]:
        target = (name or '').strip().lower()
        for product in self.get_all():
            if product.name.strip().lower() == target:
                return product
        return None
