# ==============================================================================
# SERVICIO DE MEMBRESÍAS
# ==============================================================================
# Ciclo de vida: active → (renovación) active | cancelled | expired.
# Cada cambio se refleja en el estado de membresía del cliente vinculado.
#
# Vigencia por tipo: daily 1, weekly 7, monthly 30, annual 365 días.
# ==============================================================================

from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import (
    MEMBERSHIP_DURATION_DAYS,
    Membership,
    MembershipRecordStatus,
    PaymentMethod,
)
from conejo_pos.repositories.membership_repository import MembershipRepository
from conejo_pos.services.customer_service import CustomerService
from conejo_pos.services.pricing import round_money
from conejo_pos.utils.dates import parse_iso, to_iso, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("MembershipService")

VALID_PAYMENTS = frozenset(m.value for m in PaymentMethod)


class MembershipService:
    """
    Servicio para gestión de membresías.

    Responsabilidades:
    - Alta, renovación, cancelación y expiración
    - Vincular (o crear) el cliente y mantener su estado de membresía
    - Registrar horas usadas con beneficio de membresía
    """

    def __init__(
        self,
        membership_repo: MembershipRepository,
        customer_service: CustomerService,
        clock: Callable = utcnow
    ):
        self.membership_repo = membership_repo
        self.customer_service = customer_service
        self.clock = clock

    def _validate_payment(self, method: Any, errors: List[str]) -> None:
        if method not in VALID_PAYMENTS:
            errors.append(f"Método de pago inválido: {method!r}")

    @staticmethod
    def _validate_amount(value: Any, label: str, errors: List[str]) -> None:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
            errors.append(f"{label} debe ser un número >= 0")

    # =========================================================================
    # ALTA
    # =========================================================================

    def create_membership(self, data: Dict[str, Any], actor: Optional[str] = None) -> Membership:
        """
        Crea una membresía y activa la membresía del cliente.

        Args:
            data: clientName, membershipType, price, paymentMethod,
                  plan, email, phone, notes, startDate (opcional)

        Raises:
            ValidationError: Datos faltantes o inválidos
        """
        errors = []
        client_name = data.get('clientName')
        if not isinstance(client_name, str) or not client_name.strip():
            errors.append('El nombre del cliente es requerido')
        membership_type = data.get('membershipType')
        if membership_type not in MEMBERSHIP_DURATION_DAYS:
            errors.append(f"Tipo de membresía inválido: {membership_type!r}")
        self._validate_amount(data.get('price'), 'price', errors)
        self._validate_payment(data.get('paymentMethod'), errors)

        start = self.clock()
        if data.get('startDate'):
            start = parse_iso(data['startDate'])
            if start is None:
                errors.append(f"startDate inválida: {data['startDate']!r}")
        if errors:
            raise ValidationError(errors)

        contact = {k: data[k] for k in ('email', 'phone') if data.get(k)}
        customer_errors = self.customer_service.validate(contact, partial=True)
        if customer_errors:
            raise ValidationError(customer_errors)

        end = start + timedelta(days=MEMBERSHIP_DURATION_DAYS[membership_type])
        price = round_money(data['price'])
        start_iso, end_iso = to_iso(start), to_iso(end)

        customer = self.customer_service.find_or_create(client_name.strip(), actor)
        if contact:
            self.customer_service.upsert_customer({'id': customer.id, **contact}, actor)

        membership = self.membership_repo.create({
            'clientName': client_name.strip(),
            'customerId': customer.id,
            'email': data.get('email'),
            'phone': data.get('phone'),
            'membershipType': membership_type,
            'plan': data.get('plan') or membership_type,
            'price': price,
            'startDate': start_iso,
            'endDate': end_iso,
            'status': MembershipRecordStatus.ACTIVE.value,
            'paymentMethod': data['paymentMethod'],
            'paymentHistory': [{
                'date': to_iso(self.clock()),
                'amount': price,
                'method': data['paymentMethod'],
                'notes': 'Pago inicial',
            }],
            'notes': data.get('notes') or '',
            'createdBy': actor,
        })
        self.customer_service.activate_membership(
            customer.id, membership_type, price, start_iso, end_iso
        )
        logger.info(f"Membresía {membership_type} creada para {membership.client_name} ({membership.id})")
        return membership

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    def renew_membership(
        self,
        membership_id: str,
        payment_method: str,
        amount: Optional[float] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> Membership:
        """
        Extiende la vigencia un periodo más (desde hoy o desde el fin
        actual si aún no vence) y agrega el pago al historial.
        """
        membership = self.membership_repo.require(membership_id)
        errors = []
        self._validate_payment(payment_method, errors)
        if amount is not None:
            self._validate_amount(amount, 'amount', errors)
        if membership.status == MembershipRecordStatus.CANCELLED.value:
            errors.append('No se puede renovar una membresía cancelada')
        if errors:
            raise ValidationError(errors)

        now = self.clock()
        current_end = parse_iso(membership.end_date)
        start = current_end if current_end and current_end > now else now
        end = start + timedelta(days=MEMBERSHIP_DURATION_DAYS[membership.membership_type])
        price = round_money(membership.price if amount is None else amount)

        def change(m: Membership) -> None:
            m.end_date = to_iso(end)
            if m.status != MembershipRecordStatus.ACTIVE.value:
                m.start_date = to_iso(start)
            m.status = MembershipRecordStatus.ACTIVE.value
            m.payment_method = payment_method
            m.payment_history.append({
                'date': to_iso(now),
                'amount': price,
                'method': payment_method,
                'notes': notes or 'Renovación de membresía',
            })

        membership = self.membership_repo.mutate(membership_id, change)
        if membership.customer_id:
            self.customer_service.activate_membership(
                membership.customer_id, membership.membership_type, price,
                membership.start_date, membership.end_date
            )
        logger.info(f"Membresía renovada: {membership.id} hasta {membership.end_date}")
        return membership

    def cancel_membership(
        self,
        membership_id: str,
        reason: str = '',
        actor: Optional[str] = None
    ) -> Membership:
        def change(m: Membership) -> None:
            if m.status == MembershipRecordStatus.CANCELLED.value:
                raise ValidationError('La membresía ya está cancelada')
            m.status = MembershipRecordStatus.CANCELLED.value
            line = f"Cancelada: {reason or 'sin motivo'}"
            m.notes = f"{m.notes}\n{line}" if m.notes else line

        membership = self.membership_repo.mutate(membership_id, change)
        if membership.customer_id:
            self.customer_service.expire_membership(membership.customer_id)
        logger.info(f"Membresía cancelada: {membership.id} por {actor or 'sistema'}")
        return membership

    def expire_overdue(self) -> List[Membership]:
        """
        Marca como expiradas las membresías activas ya vencidas.

        Returns:
            Membresías que cambiaron a expired
        """
        now = self.clock()
        expired = []
        for membership in self.membership_repo.get_active():
            if not membership.is_expired_at(now):
                continue

            def change(m: Membership) -> None:
                m.status = MembershipRecordStatus.EXPIRED.value

            expired.append(self.membership_repo.mutate(membership.id, change))
            if membership.customer_id and not self.membership_repo.get_active_for_customer(membership.customer_id):
                self.customer_service.expire_membership(membership.customer_id)

        if expired:
            logger.info(f"{len(expired)} membresías expiradas")
        return expired

    def register_usage(self, customer_id: str, hours: float) -> Optional[Membership]:
        """Suma horas usadas con beneficio (cliente y membresía activa)."""
        self.customer_service.use_membership_benefits(customer_id, hours)
        membership = self.membership_repo.get_active_for_customer(customer_id)
        if membership is None:
            return None

        now_iso = to_iso(self.clock())

        def change(m: Membership) -> None:
            m.usage['totalHours'] = (m.usage.get('totalHours') or 0) + hours
            m.usage['lastUsed'] = now_iso

        return self.membership_repo.mutate(membership.id, change)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_membership(self, membership_id: str) -> Membership:
        return self.membership_repo.require(membership_id)

    def list_memberships(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None
    ) -> List[Membership]:
        filters = {}
        if status:
            filters['status'] = status
        if customer_id:
            filters['customerId'] = customer_id
        return self.membership_repo.get_all(filters=filters or None)

    def delete_membership(self, membership_id: str, actor: Optional[str] = None) -> Membership:
        return self.membership_repo.soft_delete(membership_id, actor)
