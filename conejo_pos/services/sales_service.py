# ==============================================================================
# SERVICIO DE VENTAS
# ==============================================================================
# Centraliza toda la lógica de negocio relacionada con registros de venta.
#
# Orden de una venta:
#   1. Validar TODO (campos, enums, productos) antes de escribir
#   2. Calcular montos (pricing)
#   3. Persistir el registro
#   4. Descontar stock (sin fallar: advertencias si se agota)
#   5. Beneficio de membresía (horas usadas)
#   6. Agregado del cliente
# ==============================================================================

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from conejo_pos.errors import ConejoError, ValidationError
from conejo_pos.models.entities import (
    CoworkingSession,
    Customer,
    LineItem,
    PaymentMethod,
    SaleRecord,
    ServiceType,
)
from conejo_pos.repositories.sales_repository import SalesRepository
from conejo_pos.services import pricing
from conejo_pos.services.customer_service import CustomerService
from conejo_pos.services.inventory_service import InventoryService
from conejo_pos.services.membership_service import MembershipService
from conejo_pos.utils.dates import to_iso, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("SalesService")

VALID_SERVICES = frozenset(s.value for s in ServiceType)
VALID_PAYMENTS = frozenset(m.value for m in PaymentMethod)
DEFAULT_COWORKING_HOURS = 1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class SalesService:
    """
    Servicio para gestión de ventas.

    Responsabilidades:
    - Crear ventas de cafetería y coworking
    - Registrar la venta que emite una sesión de coworking al cerrarse
    - Editar campos no monetarios y propina
    - Borrado lógico con devolución de stock
    """

    def __init__(
        self,
        sales_repo: SalesRepository,
        inventory_service: InventoryService,
        customer_service: CustomerService,
        membership_service: MembershipService,
        hourly_rate: float = 58.0,
        clock: Callable = utcnow
    ):
        """
        Args:
            sales_repo: Repositorio de registros
            inventory_service: Servicio de inventario (stock)
            customer_service: Servicio de clientes (agregados)
            membership_service: Servicio de membresías (beneficios)
            hourly_rate: Tarifa por hora de ventas de coworking
            clock: Reloj inyectable (UTC)
        """
        self.sales_repo = sales_repo
        self.inventory_service = inventory_service
        self.customer_service = customer_service
        self.membership_service = membership_service
        self.hourly_rate = hourly_rate
        self.clock = clock

    # =========================================================================
    # VALIDACIÓN
    # =========================================================================

    def _validate_sale(self, data: Dict[str, Any]) -> List[str]:
        errors = []

        client = data.get('client')
        if not isinstance(client, str) or not client.strip():
            errors.append('El cliente es requerido')

        service = data.get('service')
        if service not in VALID_SERVICES:
            errors.append(f"Servicio inválido: {service!r} (válidos: cafeteria, coworking)")

        payment = data.get('payment')
        if payment not in VALID_PAYMENTS:
            errors.append(f"Método de pago inválido: {payment!r} (válidos: cash, card, transfer)")

        if service == ServiceType.COWORKING.value and data.get('hours') is not None:
            hours = data['hours']
            if not _is_number(hours) or hours < 1:
                errors.append('Las horas de coworking deben ser un número >= 1')

        tip = data.get('tip', 0)
        if tip is not None and (not _is_number(tip) or tip < 0):
            errors.append('La propina debe ser un número >= 0')

        return errors

    def _resolve_items(self, raw_items: Any, errors: List[str]) -> List[LineItem]:
        try:
            return self.inventory_service.resolve_line_items(raw_items)
        except ValidationError as e:
            errors.extend(e.errors)
            return []

    def _membership_customer(self, client: str, now: datetime) -> Optional[Customer]:
        customer = self.customer_service.find_by_name(client)
        if customer and customer.has_active_membership(now):
            return customer
        return None

    # =========================================================================
    # CREACIÓN
    # =========================================================================

    def create_sale(self, data: Dict[str, Any], actor: Optional[str] = None) -> SaleRecord:
        """
        Crea una venta.

        Args:
            data: client, service, products [{productId, quantity}], hours,
                  payment, tip, notes
            actor: Usuario que registra

        Returns:
            Registro persistido (stock_warnings lista los agotados)

        Raises:
            ValidationError: Cualquier dato faltante/inválido (antes de escribir)
        """
        errors = self._validate_sale(data)
        items = self._resolve_items(data.get('products'), errors)
        if errors:
            raise ValidationError(errors)

        now = self.clock()
        client = data['client'].strip()
        service = data['service']
        is_coworking = service == ServiceType.COWORKING.value
        # Sin horas explícitas una venta de coworking cobra 1 hora
        hours = (data.get('hours') or DEFAULT_COWORKING_HOURS) if is_coworking else 0

        member = self._membership_customer(client, now) if is_coworking else None
        if is_coworking and member is None:
            service_charge = pricing.hourly_charge(hours, self.hourly_rate)
        else:
            service_charge = 0.0

        totals = pricing.compute_sale_totals(items, service, service_charge, data.get('tip') or 0)

        doc = {
            'client': client,
            'service': service,
            'products': [i.to_dict() for i in items],
            'hours': hours,
            'payment': data['payment'],
            'notes': data.get('notes') or '',
            'createdBy': actor,
            'membershipApplied': member is not None,
            **totals.to_dict(),
        }
        return self._persist(doc, items, now, member, hours, take_stock=True, actor=actor)

    def register_session_sale(
        self,
        session: CoworkingSession,
        hours: float,
        member: Optional[Customer],
        actor: Optional[str] = None
    ) -> SaleRecord:
        """
        Registra la venta que emite una sesión cerrada. Los montos ya
        vienen calculados en la sesión y el stock ya se descontó al
        agregar cada producto.
        """
        now = self.clock()
        doc = {
            'client': session.client,
            'service': ServiceType.COWORKING.value,
            'products': [i.to_dict() for i in session.products],
            'hours': hours,
            'payment': session.payment,
            'notes': session.notes,
            'createdBy': actor,
            'sessionId': session.id,
            'membershipApplied': member is not None,
            'subtotal': session.subtotal,
            'serviceCharge': session.time_charge,
            'tip': 0.0,
            'total': session.total,
            'cost': session.cost,
            'profit': session.profit,
            'drinksCost': pricing.drinks_cost(session.products, ServiceType.COWORKING.value),
            'stockWarnings': list(session.stock_warnings),
        }
        return self._persist(doc, session.products, now, member, hours, take_stock=False, actor=actor)

    def _persist(
        self,
        doc: Dict[str, Any],
        items: List[LineItem],
        now: datetime,
        member: Optional[Customer],
        hours: float,
        take_stock: bool,
        actor: Optional[str]
    ) -> SaleRecord:
        now_iso = to_iso(now)
        doc['date'] = now_iso
        doc['time'] = now.strftime('%H:%M:%S')

        record = self.sales_repo.create(doc)

        if take_stock:
            warnings = self.inventory_service.take_stock(items, reference=record.id)
            if warnings:
                record = self.sales_repo.update(
                    record.id, {'stockWarnings': [w.to_dict() for w in warnings]}
                )

        if member is not None:
            self.membership_service.register_usage(member.id, hours)

        self.customer_service.record_visit(record, actor)

        logger.info(
            f"Venta {record.id}: {record.service} {record.client} "
            f"total={record.total} profit={record.profit}"
        )
        return record

    # =========================================================================
    # CONSULTA, EDICIÓN Y BORRADO
    # =========================================================================

    def get_sale(self, record_id: str) -> SaleRecord:
        return self.sales_repo.require(record_id)

    def list_sales(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        service: Optional[str] = None,
        client: Optional[str] = None,
        include_deleted: bool = False,
        payment: Optional[str] = None
    ) -> List[SaleRecord]:
        records = self.sales_repo.get_by_date_range(start, end, include_deleted=include_deleted)
        if service:
            records = [r for r in records if r.service == service]
        if payment:
            records = [r for r in records if r.payment == payment]
        if client:
            needle = client.strip().lower()
            records = [r for r in records if needle in r.client.lower()]
        return records

    def update_sale(
        self,
        record_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> SaleRecord:
        """
        Edita cliente, pago, notas o propina. Productos y horas no se
        editan (implican stock); para eso se borra y se crea de nuevo.
        """
        errors = []
        allowed = ('client', 'payment', 'notes', 'tip')
        unknown = [k for k in updates if k not in allowed]
        if unknown:
            errors.append(f"Campos no editables: {', '.join(sorted(unknown))}")
        if 'client' in updates and (not isinstance(updates['client'], str) or not updates['client'].strip()):
            errors.append('El cliente es requerido')
        if 'payment' in updates and updates['payment'] not in VALID_PAYMENTS:
            errors.append(f"Método de pago inválido: {updates['payment']!r}")
        if 'tip' in updates and (not _is_number(updates['tip']) or updates['tip'] < 0):
            errors.append('La propina debe ser un número >= 0')
        if errors:
            raise ValidationError(errors)

        def change(record: SaleRecord) -> None:
            if 'client' in updates:
                record.client = updates['client'].strip()
            if 'payment' in updates:
                record.payment = updates['payment']
            if 'notes' in updates:
                record.notes = updates['notes'] or ''
            if 'tip' in updates:
                record.tip = pricing.round_money(updates['tip'])
                record.total = pricing.round_money(record.subtotal + record.service_charge + record.tip)
                record.profit = pricing.round_money(record.total - record.cost)

        record = self.sales_repo.mutate(record_id, change)
        logger.info(f"Venta {record.id} editada por {actor or 'sistema'}: {sorted(updates)}")
        return record

    def delete_sale(self, record_id: str, actor: Optional[str] = None) -> SaleRecord:
        """
        Borrado lógico + devolución del stock de cada línea.
        Los agregados del cliente NO se revierten (historial append-only).

        Si la devolución de stock falla, se deshace lo devuelto y el
        registro vuelve a quedar visible, así que se puede reintentar.
        """
        record = self.sales_repo.soft_delete(record_id, actor)
        # Solo vuelve lo que realmente salió del inventario
        pending = self.inventory_service.returnable_items(record.products, record.stock_warnings)
        returned: List[LineItem] = []
        try:
            for item in pending:
                self.inventory_service.return_stock([item], reference=record.id)
                returned.append(item)
        except ConejoError:
            self._undo_delete(record.id, returned)
            raise
        logger.info(f"Venta {record.id} eliminada por {actor or 'sistema'}")
        return record

    def _undo_delete(self, record_id: str, returned: List[LineItem]) -> None:
        self.inventory_service.take_stock(returned, reference=record_id)

        def restore(record: SaleRecord) -> None:
            record.is_deleted = False
            record.deleted_at = None
            record.deleted_by = None

        self.sales_repo.mutate(record_id, restore, include_deleted=True)
        logger.error(f"Borrado de la venta {record_id} revertido: falló la devolución de stock")
