# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================

from typing import Any, Dict, List, Optional, Tuple

from conejo_pos.models.entities import Customer

from .base import BaseRepository


class CustomerRepository(BaseRepository[Customer]):
    """Colección 'customers'."""

    collection = 'customers'
    entity_cls = Customer
    id_prefix = 'customer'
    entity_name = 'Cliente'

    def get_by_name(self, name: str) -> Optional[Customer]:
        """Búsqueda exacta sin distinguir mayúsculas."""
        target = (name or '').strip().lower()
        if not target:
            return None
        for customer in self.get_all():
            if customer.name.strip().lower() == target:
                return customer
        return None

    def get_or_create_by_name(
        self,
        name: str,
        defaults: Optional[Dict[str, Any]] = None
    ) -> Tuple[Customer, bool]:
        """
        Busca por nombre y, si no existe, lo crea bajo el mismo lock.

        Returns:
            Tupla (cliente, creado)
        """
        with self.backend.locked(self.collection):
            existing = self.get_by_name(name)
            if existing is not None:
                return existing, False
            return self.create({**(defaults or {}), 'name': name.strip()}), True

    def search(self, term: str) -> List[Customer]:
        """Coincidencia parcial en nombre, email o teléfono."""
        needle = (term or '').strip().lower()
        if not needle:
            return self.get_all()
        result = []
        for customer in self.get_all():
            haystack = ' '.join(
                v for v in (customer.name, customer.email, customer.phone) if v
            ).lower()
            if needle in haystack:
                result.append(customer)
        return result
