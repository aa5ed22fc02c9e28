# ==============================================================================
# SERVICIO DE INVENTARIO
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con productos y stock.
# Resuelve líneas de venta contra el inventario y aplica los descuentos
# y devoluciones de stock de ventas y sesiones.
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from conejo_pos.errors import InsufficientStock, ValidationError
from conejo_pos.models.entities import LineItem, Product, ProductCategory
from conejo_pos.repositories.product_repository import STOCK_OPERATIONS, ProductRepository
from conejo_pos.utils.logger import get_logger

logger = get_logger("InventoryService")

VALID_CATEGORIES = frozenset(c.value for c in ProductCategory)

# Campos permitidos para actualización
UPDATABLE_FIELDS = (
    'name', 'category', 'cost', 'price', 'lowStockAlert',
    'description', 'barcode', 'quantity',
)


def is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_non_negative_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0


class InventoryService:
    """
    Servicio para gestión de inventario.

    Responsabilidades:
    - CRUD de productos (eliminación lógica vía isActive)
    - Control de stock (entradas, salidas, ajustes)
    - Resolver líneas [{productId, quantity}] a LineItem con precio/costo
    """

    def __init__(self, product_repo: ProductRepository):
        """
        Args:
            product_repo: Repositorio de productos
        """
        self.product_repo = product_repo

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    def _validate_fields(self, data: Dict[str, Any], partial: bool = False) -> List[str]:
        errors = []

        if not partial or 'name' in data:
            name = data.get('name')
            if not isinstance(name, str) or not name.strip():
                errors.append('El nombre del producto es requerido')

        if not partial or 'category' in data:
            if data.get('category') not in VALID_CATEGORIES:
                errors.append(
                    f"Categoría inválida: {data.get('category')!r} "
                    f"(válidas: {', '.join(sorted(VALID_CATEGORIES))})"
                )

        for key in ('cost', 'price'):
            if key in data or not partial:
                if not _is_non_negative_number(data.get(key, 0)):
                    errors.append(f"{key} debe ser un número >= 0")

        if 'quantity' in data:
            qty = data['quantity']
            if isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
                errors.append('quantity debe ser un entero >= 0')

        if 'lowStockAlert' in data:
            alert = data['lowStockAlert']
            if isinstance(alert, bool) or not isinstance(alert, int) or alert < 0:
                errors.append('lowStockAlert debe ser un entero >= 0')

        return errors

    # =========================================================================
    # OPERACIONES DE PRODUCTOS
    # =========================================================================

    def create_product(self, data: Dict[str, Any], actor: Optional[str] = None) -> Product:
        """
        Crea un producto nuevo.

        Args:
            data: name, category, quantity, cost, price, lowStockAlert...
            actor: Usuario que crea

        Raises:
            ValidationError: Datos inválidos
        """
        errors = self._validate_fields(data)
        if errors:
            raise ValidationError(errors)

        doc = {k: data[k] for k in UPDATABLE_FIELDS if k in data}
        doc['name'] = doc['name'].strip()
        doc.setdefault('quantity', 0)
        doc['cost'] = round(float(data.get('cost', 0)), 2)
        doc['price'] = round(float(data.get('price', 0)), 2)
        doc['isActive'] = True
        doc['createdBy'] = actor
        doc['lastModifiedBy'] = actor

        product = self.product_repo.create(doc)
        logger.info(f"Producto creado: {product.name} ({product.id})")
        return product

    def update_product(
        self,
        product_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Product:
        """
        Actualiza datos de un producto (solo campos permitidos).

        Raises:
            ValidationError: Datos inválidos
            NotFoundError: Si no existe
        """
        filtered = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
        errors = self._validate_fields(filtered, partial=True)
        if errors:
            raise ValidationError(errors)

        for key in ('cost', 'price'):
            if key in filtered:
                filtered[key] = round(float(filtered[key]), 2)
        filtered['lastModifiedBy'] = actor
        return self.product_repo.update(product_id, filtered)

    def adjust_stock(
        self,
        product_id: str,
        amount: int,
        op: str = 'add',
        actor: Optional[str] = None
    ) -> Product:
        """
        Ajuste manual de stock (entrada, salida o conteo físico).

        Raises:
            ValidationError: Operación o cantidad inválida
            NotFoundError: Si no existe
        """
        if op not in STOCK_OPERATIONS:
            raise ValidationError(f"Operación inválida: {op} (válidas: {', '.join(STOCK_OPERATIONS)})")
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError('La cantidad debe ser un entero >= 0')

        product, shortfall = self.product_repo.adjust_stock(product_id, amount, op)
        if shortfall:
            logger.warning(
                f"Ajuste de stock de {product.name} quedó en 0 (faltaron {shortfall})"
            )
        logger.info(f"Stock {op} {amount} → {product.name}: {product.quantity} (por {actor or 'sistema'})")
        return product

    def delete_product(self, product_id: str, actor: Optional[str] = None) -> Product:
        """Desactiva un producto (eliminación lógica)."""
        product = self.product_repo.soft_delete(product_id, actor)
        logger.info(f"Producto desactivado: {product.name} ({product.id})")
        return product

    def get_product(self, product_id: str) -> Product:
        """Raises NotFoundError si no existe o está inactivo."""
        return self.product_repo.require(product_id)

    def list_products(
        self,
        category: Optional[str] = None,
        include_inactive: bool = False
    ) -> List[Product]:
        products = self.product_repo.get_all(include_deleted=include_inactive)
        if category:
            products = [p for p in products if p.category == category]
        return products

    def get_low_stock(self) -> List[Product]:
        return self.product_repo.get_low_stock()

    # =========================================================================
    # LÍNEAS DE VENTA Y STOCK
    # =========================================================================

    def resolve_line_items(self, items: Any) -> List[LineItem]:
        """
        Convierte [{productId, quantity}] en LineItem con precio/costo actuales.
        Líneas repetidas del mismo producto se suman.

        Raises:
            ValidationError: Lista vacía, cantidad no entera positiva, o
                producto inexistente/inactivo (se reportan todos juntos)
        """
        if not isinstance(items, list) or not items:
            raise ValidationError('Se requiere al menos un producto')

        errors = []
        resolved: Dict[str, LineItem] = {}

        for index, raw in enumerate(items):
            if not isinstance(raw, dict):
                errors.append(f"Producto #{index + 1} inválido")
                continue
            product_id = raw.get('productId') or raw.get('id')
            quantity = raw.get('quantity')

            if not product_id:
                errors.append(f"Producto #{index + 1} sin productId")
                continue
            if not is_positive_int(quantity):
                errors.append(f"Cantidad inválida para {product_id}: {quantity!r}")
                continue

            product = self.product_repo.get_by_id(product_id)
            if product is None:
                errors.append(f"Producto {product_id} no encontrado o inactivo")
                continue

            if product_id in resolved:
                resolved[product_id].quantity += quantity
            else:
                resolved[product_id] = product.to_line_item(quantity)

        if errors:
            raise ValidationError(errors)
        return list(resolved.values())

    def take_stock(self, items: List[LineItem], reference: str = '') -> List[InsufficientStock]:
        """
        Descuenta el stock de cada línea. Nunca falla por falta de stock:
        el producto queda en 0 y se retorna una advertencia.

        Args:
            items: Líneas a descontar
            reference: Id de venta/sesión (solo para el log)

        Returns:
            Lista de advertencias InsufficientStock
        """
        warnings = []
        for item in items:
            product, shortfall = self.product_repo.adjust_stock(
                item.product_id, item.quantity, 'subtract', include_inactive=True
            )
            if shortfall:
                warning = InsufficientStock(
                    product_id=item.product_id,
                    name=product.name,
                    requested=item.quantity,
                    available=item.quantity - shortfall,
                )
                logger.warning(f"{warning} [{reference}]")
                warnings.append(warning)
        return warnings

    def return_stock(self, items: List[LineItem], reference: str = '') -> None:
        """Devuelve al inventario el stock de las líneas (borrado/cancelación)."""
        for item in items:
            self.product_repo.adjust_stock(
                item.product_id, item.quantity, 'add', include_inactive=True
            )
        if items:
            logger.info(f"Stock devuelto de {len(items)} líneas [{reference}]")

    # =========================================================================
    # FALTANTES
    # =========================================================================

    @staticmethod
    def shortfalls(warnings: List[Dict[str, Any]]) -> Dict[str, int]:
        """{productId: unidades que no salieron del inventario}."""
        result: Dict[str, int] = {}
        for w in warnings or []:
            missing = max(0, (w.get('requested') or 0) - (w.get('available') or 0))
            if missing:
                result[w.get('productId')] = result.get(w.get('productId'), 0) + missing
        return result

    @classmethod
    def returnable_items(
        cls,
        items: List[LineItem],
        warnings: List[Dict[str, Any]]
    ) -> List[LineItem]:
        """Líneas con la cantidad que realmente salió del inventario."""
        missing = cls.shortfalls(warnings)
        result = []
        for item in items:
            quantity = item.quantity - missing.get(item.product_id, 0)
            if quantity > 0:
                result.append(LineItem(
                    product_id=item.product_id, name=item.name, quantity=quantity,
                    price=item.price, cost=item.cost, category=item.category,
                ))
        return result

    @staticmethod
    def merge_warnings(
        current: List[Dict[str, Any]],
        new: List[InsufficientStock]
    ) -> List[Dict[str, Any]]:
        """Acumula advertencias por producto (requested/available sumados)."""
        merged = {w['productId']: dict(w) for w in current or []}
        for warning in new:
            entry = merged.get(warning.product_id)
            if entry is None:
                merged[warning.product_id] = warning.to_dict()
            else:
                entry['requested'] += warning.requested
                entry['available'] += warning.available
        return list(merged.values())

    @staticmethod
    def release_warning(
        current: List[Dict[str, Any]],
        product_id: str,
        removed: int
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Ajusta la advertencia de un producto al quitar `removed` unidades.

        Returns:
            Tupla (advertencias restantes, unidades a devolver al inventario)
        """
        result = []
        to_return = removed
        for w in current or []:
            if w.get('productId') != product_id:
                result.append(w)
                continue
            missing = max(0, w['requested'] - w['available'])
            consumed = min(missing, removed)
            to_return = removed - consumed
            requested = w['requested'] - removed
            missing -= consumed
            if requested > 0 and missing > 0:
                result.append({**w, 'requested': requested, 'available': requested - missing})
        return result, to_return
