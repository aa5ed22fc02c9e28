# ==============================================================================
# SERVICIO DE CLIENTES
# ==============================================================================
# Mantiene el agregado de cada cliente (visitas, gasto, lealtad,
# preferencias) y su estado de membresía. Los clientes se identifican por
# id o, al venir de una venta, por nombre sin distinguir mayúsculas.
# ==============================================================================

import re
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import Customer, MembershipStatus, SaleRecord
from conejo_pos.repositories.customer_repository import CustomerRepository
from conejo_pos.utils.dates import utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("CustomerService")

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
# Formato de teléfono mexicano (con o sin +52)
PHONE_RE = re.compile(r'^(\+52)?[\s\-]?(\d{2,3})[\s\-]?(\d{3,4})[\s\-]?(\d{4})$')

# Campos editables desde fuera (las estadísticas no)
EDITABLE_FIELDS = ('name', 'email', 'phone', 'notes', 'status')


class CustomerService:
    """
    Servicio para gestión de clientes.

    Responsabilidades:
    - Alta/edición de clientes con validación de contacto
    - Actualizar agregados con cada venta
    - Estado de membresía del lado del cliente
    - Resúmenes y estadísticas
    """

    def __init__(self, customer_repo: CustomerRepository, clock: Callable = utcnow):
        self.customer_repo = customer_repo
        self.clock = clock

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    @staticmethod
    def validate(data: Dict[str, Any], partial: bool = False) -> List[str]:
        errors = []
        if not partial or 'name' in data:
            name = data.get('name')
            if not isinstance(name, str) or not name.strip():
                errors.append('El nombre del cliente es requerido')
        email = data.get('email')
        if email and not EMAIL_RE.match(str(email)):
            errors.append(f"Email inválido: {email}")
        phone = data.get('phone')
        if phone and not PHONE_RE.match(str(phone)):
            errors.append(f"Teléfono inválido: {phone}")
        return errors

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_customer(self, customer_id: str) -> Customer:
        return self.customer_repo.require(customer_id)

    def find_by_name(self, name: str) -> Optional[Customer]:
        return self.customer_repo.get_by_name(name)

    def list_customers(self) -> List[Customer]:
        return self.customer_repo.get_all()

    def search_customers(self, term: str) -> List[Customer]:
        return self.customer_repo.search(term)

    def has_active_membership(self, name: str) -> bool:
        customer = self.find_by_name(name)
        return bool(customer and customer.has_active_membership(self.clock()))

    def get_customer_summary(self, customer_id: str) -> Dict[str, Any]:
        """Segmento, favoritos, pago preferido, días sin visitar, riesgo."""
        return self.get_customer(customer_id).summary(self.clock())

    def get_customer_stats(self) -> Dict[str, Any]:
        """Estadísticas globales de la cartera de clientes."""
        now = self.clock()
        customers = self.list_customers()
        segments = Counter(c.segment(now) for c in customers)
        tiers = Counter(c.loyalty_tier for c in customers)
        total_spent = round(sum(c.total_spent for c in customers), 2)
        return {
            'totalCustomers': len(customers),
            'activeMemberships': sum(1 for c in customers if c.has_active_membership(now)),
            'atRisk': sum(1 for c in customers if c.is_at_risk(now)),
            'totalSpent': total_spent,
            'averageLifetimeValue': round(total_spent / len(customers), 2) if customers else 0.0,
            'segments': dict(segments),
            'loyaltyTiers': dict(tiers),
        }

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def upsert_customer(self, data: Dict[str, Any], actor: Optional[str] = None) -> Customer:
        """
        Crea o actualiza un cliente: por id si viene, si no por nombre.

        Raises:
            ValidationError: Nombre faltante, email o teléfono inválidos
            NotFoundError: Si viene un id inexistente
        """
        customer_id = data.get('id')
        errors = self.validate(data, partial=bool(customer_id))
        if errors:
            raise ValidationError(errors)

        fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
        if 'name' in fields:
            fields['name'] = fields['name'].strip()

        if customer_id:
            return self.customer_repo.update(customer_id, fields)

        existing = self.find_by_name(fields['name'])
        if existing:
            return self.customer_repo.update(existing.id, fields)

        fields['createdBy'] = actor
        customer = self.customer_repo.create(fields)
        logger.info(f"Cliente creado: {customer.name} ({customer.id})")
        return customer

    def find_or_create(self, name: str, actor: Optional[str] = None) -> Customer:
        customer, created = self.customer_repo.get_or_create_by_name(name, {'createdBy': actor})
        if created:
            logger.info(f"Cliente creado: {customer.name} ({customer.id})")
        return customer

    def record_visit(self, record: SaleRecord, actor: Optional[str] = None) -> Customer:
        """Suma una venta al agregado del cliente (creándolo si hace falta)."""
        customer = self.find_or_create(record.client, actor)
        return self.customer_repo.mutate(customer.id, lambda c: c.add_visit(record))

    def activate_membership(
        self,
        customer_id: str,
        membership_type: str,
        price: float,
        start_iso: str,
        end_iso: str
    ) -> Customer:
        return self.customer_repo.mutate(
            customer_id,
            lambda c: c.activate_membership(membership_type, price, start_iso, end_iso)
        )

    def use_membership_benefits(self, customer_id: str, hours: float) -> Customer:
        return self.customer_repo.mutate(
            customer_id, lambda c: c.use_membership_benefits(hours)
        )

    def expire_membership(self, customer_id: str) -> Customer:
        def change(customer: Customer) -> None:
            customer.membership_status = MembershipStatus.EXPIRED.value
        return self.customer_repo.mutate(customer_id, change)

    def soft_delete_customer(self, customer_id: str, actor: Optional[str] = None) -> Customer:
        customer = self.customer_repo.soft_delete(customer_id, actor)
        logger.info(f"Cliente eliminado: {customer.name} ({customer.id})")
        return customer
