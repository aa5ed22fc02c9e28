# ==============================================================================
# SERVICIO DE COWORKING
# ==============================================================================
# Ciclo de vida de una sesión:
#
#   active ──pause──▶ paused ──resume──▶ active
#   active|paused ──close──▶ closed      (emite un registro de venta)
#   active|paused ──cancel─▶ cancelled   (devuelve stock, sin registro)
#
# El tiempo pausado no se cobra. Más de DAY_RATE_THRESHOLD_HOURS horas
# cobra la tarifa de día; una membresía activa anula el cobro de tiempo
# (se revisa ANTES que la tarifa de día).
#
# Los productos descuentan stock al agregarse; al cerrar NO se vuelve a
# descontar. Orden de locks: coworking_sessions → products.
# ==============================================================================

from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from conejo_pos.errors import ConejoError, ValidationError
from conejo_pos.models.entities import (
    AppliedRate,
    CoworkingSession,
    Customer,
    PaymentMethod,
    ServiceType,
    SessionStatus,
)
from conejo_pos.repositories.session_repository import SessionRepository
from conejo_pos.services import pricing
from conejo_pos.services.customer_service import CustomerService
from conejo_pos.services.inventory_service import InventoryService, is_positive_int
from conejo_pos.services.sales_service import SalesService
from conejo_pos.utils.dates import to_iso, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("CoworkingService")

VALID_PAYMENTS = frozenset(m.value for m in PaymentMethod)
VALID_STATUSES = frozenset(s.value for s in SessionStatus)

# Campos que se congelan al cerrar
FROZEN_ON_CLOSE = (
    'duration', 'time_charge', 'applied_rate', 'subtotal', 'total',
    'cost', 'profit', 'end_time', 'paused_at', 'status', 'payment',
)


class CoworkingService:
    """
    Servicio para sesiones de coworking.

    Responsabilidades:
    - Abrir, pausar, reanudar, cerrar y cancelar sesiones
    - Productos consumidos durante la sesión (con stock)
    - Cobro por tiempo (hora / día / membresía)
    """

    def __init__(
        self,
        session_repo: SessionRepository,
        inventory_service: InventoryService,
        sales_service: SalesService,
        customer_service: CustomerService,
        default_hourly_rate: float = 72.0,
        day_rate: float = 225.0,
        day_rate_threshold_hours: float = 4.0,
        clock: Callable = utcnow
    ):
        self.session_repo = session_repo
        self.inventory_service = inventory_service
        self.sales_service = sales_service
        self.customer_service = customer_service
        self.default_hourly_rate = default_hourly_rate
        self.day_rate = day_rate
        self.day_rate_threshold_hours = day_rate_threshold_hours
        self.clock = clock

    # =========================================================================
    # CÁLCULOS
    # =========================================================================

    def _bill(
        self,
        session: CoworkingSession,
        now: datetime,
        member: Optional[Customer] = None
    ) -> None:
        """Recalcula duración y montos de una sesión abierta."""
        session.duration = session.elapsed_ms(now)
        if member is not None:
            session.time_charge = 0.0
            session.applied_rate = AppliedRate.MEMBERSHIP.value
        else:
            session.time_charge, session.applied_rate = pricing.session_time_charge(
                session.elapsed_hours(now),
                session.hourly_rate,
                self.day_rate,
                self.day_rate_threshold_hours,
            )
        totals = pricing.compute_sale_totals(
            session.products, ServiceType.COWORKING.value, session.time_charge
        )
        session.subtotal = totals.subtotal
        session.total = totals.total
        session.cost = totals.cost
        session.profit = totals.profit

    def _refresh(self, session: CoworkingSession) -> CoworkingSession:
        """Valores en vivo para sesiones abiertas (no se persisten)."""
        if session.is_open:
            self._bill(session, self.clock())
        return session

    def _require_open(self, session: CoworkingSession) -> None:
        if not session.is_open:
            raise ValidationError(f"La sesión {session.id} ya está {session.status}")

    # =========================================================================
    # APERTURA Y CONSULTA
    # =========================================================================

    def open_session(self, data: Dict[str, Any], actor: Optional[str] = None) -> CoworkingSession:
        """
        Abre una sesión nueva.

        Args:
            data: client, hourlyRate (opcional), notes

        Raises:
            ValidationError: Cliente faltante o tarifa <= 0
        """
        errors = []
        client = data.get('client')
        if not isinstance(client, str) or not client.strip():
            errors.append('El cliente es requerido')
        rate = data.get('hourlyRate', self.default_hourly_rate)
        if isinstance(rate, bool) or not isinstance(rate, (int, float)) or rate <= 0:
            errors.append('La tarifa por hora debe ser mayor a 0')
        if errors:
            raise ValidationError(errors)

        session = self.session_repo.create({
            'client': client.strip(),
            'startTime': to_iso(self.clock()),
            'hourlyRate': float(rate),
            'status': SessionStatus.ACTIVE.value,
            'notes': data.get('notes') or '',
            'createdBy': actor,
        })
        logger.info(f"Sesión abierta: {session.id} ({session.client})")
        return session

    def get_session(self, session_id: str) -> CoworkingSession:
        return self._refresh(self.session_repo.require(session_id))

    def list_sessions(self, status: Optional[str] = None) -> List[CoworkingSession]:
        if status and status not in VALID_STATUSES:
            raise ValidationError(f"Estado inválido: {status!r}")
        sessions = self.session_repo.get_all()
        if status:
            sessions = [s for s in sessions if s.status == status]
        return [self._refresh(s) for s in sessions]

    # =========================================================================
    # PAUSA
    # =========================================================================

    def pause_session(self, session_id: str) -> CoworkingSession:
        now_iso = to_iso(self.clock())

        def change(session: CoworkingSession) -> None:
            if session.status != SessionStatus.ACTIVE.value:
                raise ValidationError(f"Solo se puede pausar una sesión activa ({session.status})")
            session.pause(now_iso)

        session = self.session_repo.mutate(session_id, change)
        logger.info(f"Sesión pausada: {session.id}")
        return self._refresh(session)

    def resume_session(self, session_id: str) -> CoworkingSession:
        now = self.clock()

        def change(session: CoworkingSession) -> None:
            if session.status != SessionStatus.PAUSED.value:
                raise ValidationError(f"Solo se puede reanudar una sesión pausada ({session.status})")
            session.resume(now)

        session = self.session_repo.mutate(session_id, change)
        logger.info(f"Sesión reanudada: {session.id}")
        return self._refresh(session)

    # =========================================================================
    # PRODUCTOS
    # =========================================================================

    def add_line_item(
        self,
        session_id: str,
        product_id: str,
        quantity: int = 1,
        actor: Optional[str] = None
    ) -> CoworkingSession:
        """
        Agrega un producto a la sesión y descuenta stock de inmediato.

        Raises:
            ValidationError: Sesión cerrada, cantidad o producto inválidos
            NotFoundError: Si la sesión no existe
        """
        session = self.session_repo.require(session_id)
        self._require_open(session)
        if not is_positive_int(quantity):
            raise ValidationError(f"Cantidad inválida: {quantity!r}")
        item = self.inventory_service.resolve_line_items(
            [{'productId': product_id, 'quantity': quantity}]
        )[0]

        def change(s: CoworkingSession) -> None:
            # Bajo el lock de la sesión: una sesión recién cerrada no toma stock
            self._require_open(s)
            warnings = self.inventory_service.take_stock([item], reference=session_id)
            s.add_product(item)
            if warnings:
                s.stock_warnings = self.inventory_service.merge_warnings(s.stock_warnings, warnings)

        session = self.session_repo.mutate(session_id, change)
        logger.info(f"Sesión {session_id}: +{quantity} {item.name} (por {actor or 'sistema'})")
        return self._refresh(session)

    def remove_line_item(
        self,
        session_id: str,
        product_id: str,
        quantity: Optional[int] = None
    ) -> CoworkingSession:
        """
        Quita unidades de un producto (todas si no se indica cantidad)
        y devuelve su stock.
        """
        if quantity is not None and not is_positive_int(quantity):
            raise ValidationError(f"Cantidad inválida: {quantity!r}")

        returned = {}

        def change(s: CoworkingSession) -> None:
            self._require_open(s)
            existing = s.find_product(product_id)
            if existing is None:
                raise ValidationError(f"El producto {product_id} no está en la sesión")
            template = replace(existing)
            removed = s.remove_product(product_id, quantity)
            s.stock_warnings, to_return = self.inventory_service.release_warning(
                s.stock_warnings, product_id, removed
            )
            if to_return > 0:
                template.quantity = to_return
                returned['item'] = template

        session = self.session_repo.mutate(session_id, change)
        if 'item' in returned:
            self.inventory_service.return_stock([returned['item']], reference=session_id)
        return self._refresh(session)

    # =========================================================================
    # CIERRE Y CANCELACIÓN
    # =========================================================================

    def close_session(
        self,
        session_id: str,
        payment: str,
        actor: Optional[str] = None
    ) -> CoworkingSession:
        """
        Cierra la sesión, congela montos y emite el registro de venta.

        La sesión pasa a 'closed' bajo el lock de su colección ANTES de
        escribir la venta: un segundo cierre concurrente falla sin efectos.
        Si el registro de la venta falla, la sesión se reabre.

        Raises:
            ValidationError: Pago inválido o sesión ya cerrada/cancelada
        """
        if payment not in VALID_PAYMENTS:
            raise ValidationError(f"Método de pago inválido: {payment!r}")
        session = self.session_repo.require(session_id)
        self._require_open(session)

        now = self.clock()
        member = self.customer_service.find_by_name(session.client)
        if member is not None and not member.has_active_membership(now):
            member = None

        captured = {}

        def close(s: CoworkingSession) -> None:
            self._require_open(s)
            captured['before'] = replace(s)
            self._bill(s, now, member)
            captured['hours'] = s.billed_hours(now)
            s.end_time = to_iso(now)
            s.paused_at = None
            s.status = SessionStatus.CLOSED.value
            s.payment = payment

        session = self.session_repo.mutate(session_id, close)

        try:
            record = self.sales_service.register_session_sale(
                session, captured['hours'], member, actor
            )
        except ConejoError:
            before = captured['before']

            def reopen(s: CoworkingSession) -> None:
                for name in FROZEN_ON_CLOSE:
                    setattr(s, name, getattr(before, name))

            self.session_repo.mutate(session_id, reopen)
            logger.error(f"Cierre de la sesión {session_id} revertido: no se pudo registrar la venta")
            raise

        def link(s: CoworkingSession) -> None:
            s.record_id = record.id

        session = self.session_repo.mutate(session_id, link)
        logger.info(
            f"Sesión cerrada: {session.id} {session.applied_rate} "
            f"tiempo={session.time_charge} total={session.total} → {record.id}"
        )
        return session

    def cancel_session(self, session_id: str, actor: Optional[str] = None) -> CoworkingSession:
        """Cancela la sesión y devuelve el stock de sus productos."""
        now = self.clock()
        captured = {}

        def change(s: CoworkingSession) -> None:
            self._require_open(s)
            s.duration = s.elapsed_ms(now)
            captured['items'] = self.inventory_service.returnable_items(s.products, s.stock_warnings)
            s.status = SessionStatus.CANCELLED.value
            s.end_time = to_iso(now)
            s.paused_at = None

        session = self.session_repo.mutate(session_id, change)
        self.inventory_service.return_stock(captured.get('items', []), reference=session_id)
        logger.info(f"Sesión cancelada: {session.id} por {actor or 'sistema'}")
        return session

