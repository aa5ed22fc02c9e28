# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un concepto del negocio.
# Diseñadas para ser independientes del mecanismo de persistencia:
# to_dict() produce el documento camelCase que se guarda tal cual en
# JSON o en la columna `data` de SQL; from_dict() tolera documentos
# legacy (categorías y métodos de pago en español, status 'completed').
# ==============================================================================

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from conejo_pos.utils.dates import parse_iso


# ==============================================================================
# ENUMERACIONES - Estados y tipos válidos
# ==============================================================================

class ProductCategory(str, Enum):
    """Categorías de producto. Solo REFRIGERATOR se cobra en coworking."""
    CAFETERIA = "cafeteria"
    REFRIGERATOR = "refrigerator"
    FOOD = "food"


class ServiceType(str, Enum):
    """Tipos de servicio de una venta."""
    CAFETERIA = "cafeteria"
    COWORKING = "coworking"


class PaymentMethod(str, Enum):
    """Métodos de pago aceptados."""
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class SessionStatus(str, Enum):
    """Estados de una sesión de coworking."""
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class AppliedRate(str, Enum):
    """Tarifa aplicada al cobro de tiempo."""
    HOURLY = "hourly"
    DAY = "day"
    MEMBERSHIP = "membership"


class LoyaltyTier(str, Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class MembershipStatus(str, Enum):
    """Estado de membresía visto desde el cliente."""
    NONE = "none"
    ACTIVE = "active"
    EXPIRED = "expired"


class MembershipRecordStatus(str, Enum):
    """Estado del registro de membresía."""
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    PENDING = "pending"


class MembershipType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ANNUAL = "annual"


class CashCutType(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class ExpenseCategory(str, Enum):
    FIXED = "fixed"
    PAYROLL = "payroll"
    SUPPLIES = "supplies"
    MAINTENANCE = "maintenance"
    MARKETING = "marketing"
    OTHER = "other"


class ExpenseStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"


class ExpenseType(str, Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class UserRole(str, Enum):
    """Roles de usuario disponibles en el sistema."""
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


# Días de vigencia por tipo de membresía
MEMBERSHIP_DURATION_DAYS = {
    MembershipType.DAILY.value: 1,
    MembershipType.WEEKLY.value: 7,
    MembershipType.MONTHLY.value: 30,
    MembershipType.ANNUAL.value: 365,
}

# Umbrales de puntos (de mayor a menor)
LOYALTY_THRESHOLDS = (
    (10000, LoyaltyTier.PLATINUM),
    (5000, LoyaltyTier.GOLD),
    (2000, LoyaltyTier.SILVER),
    (0, LoyaltyTier.BRONZE),
)

# Valores legacy que aparecen en datos antiguos
_LEGACY_CATEGORIES = {
    'refrigerador': ProductCategory.REFRIGERATOR.value,
    'alimentos': ProductCategory.FOOD.value,
    'comida': ProductCategory.FOOD.value,
}
_LEGACY_PAYMENTS = {
    'efectivo': PaymentMethod.CASH.value,
    'tarjeta': PaymentMethod.CARD.value,
    'transferencia': PaymentMethod.TRANSFER.value,
}
_LEGACY_SESSION_STATUS = {
    'completed': SessionStatus.CLOSED.value,
}

WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

MS_PER_HOUR = 3600 * 1000


def enum_value(value: Any) -> Any:
    """Retorna el valor plano de un Enum (o el valor tal cual)."""
    return value.value if isinstance(value, Enum) else value


def normalize_category(value: Any) -> str:
    raw = str(enum_value(value) or '').strip().lower()
    return _LEGACY_CATEGORIES.get(raw, raw or ProductCategory.CAFETERIA.value)


def normalize_payment(value: Any) -> Optional[str]:
    if value is None or value == '':
        return None
    raw = str(enum_value(value)).strip().lower()
    return _LEGACY_PAYMENTS.get(raw, raw)


def normalize_session_status(value: Any) -> str:
    raw = str(enum_value(value) or SessionStatus.ACTIVE.value).strip().lower()
    return _LEGACY_SESSION_STATUS.get(raw, raw)


def tier_for_points(points: float) -> LoyaltyTier:
    """Nivel de lealtad como función pura (monótona) de los puntos."""
    for threshold, tier in LOYALTY_THRESHOLDS:
        if points >= threshold:
            return tier
    return LoyaltyTier.BRONZE


def _money(value: Any) -> float:
    return round(float(value or 0), 2)


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ==============================================================================
# ENTIDADES DE INVENTARIO
# ==============================================================================

@dataclass
class LineItem:
    """
    Línea de producto dentro de una venta o sesión.
    price/cost son unitarios y se congelan al momento de agregar.
    """
    product_id: str
    name: str = ''
    quantity: int = 1
    price: float = 0.0
    cost: float = 0.0
    category: str = ProductCategory.CAFETERIA.value

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    @property
    def line_cost(self) -> float:
        return self.cost * self.quantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            'productId': self.product_id,
            'name': self.name,
            'quantity': self.quantity,
            'price': self.price,
            'cost': self.cost,
            'category': enum_value(self.category),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        return cls(
            product_id=str(data.get('productId') or data.get('_id') or data.get('id') or ''),
            name=data.get('name', ''),
            quantity=_int(data.get('quantity'), 1),
            price=float(data.get('price') or 0),
            cost=float(data.get('cost') or 0),
            category=normalize_category(data.get('category')),
        )


@dataclass
class Product:
    """
    Producto del inventario.

    Attributes:
        quantity: Stock actual, nunca negativo
        low_stock_alert: Umbral para considerar stock bajo
        is_active: False = eliminado lógicamente
    """
    id: str
    name: str
    category: str = ProductCategory.CAFETERIA.value
    quantity: int = 0
    cost: float = 0.0
    price: float = 0.0
    low_stock_alert: int = 5
    is_active: bool = True
    description: str = ''
    barcode: Optional[str] = None
    created_by: Optional[str] = None
    last_modified_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_alert

    @property
    def margin(self) -> float:
        return round(self.price - self.cost, 2)

    def to_line_item(self, quantity: int) -> LineItem:
        """Congela precio/costo actuales en una línea."""
        return LineItem(
            product_id=self.id,
            name=self.name,
            quantity=quantity,
            price=self.price,
            cost=self.cost,
            category=enum_value(self.category),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'category': enum_value(self.category),
            'quantity': self.quantity,
            'cost': self.cost,
            'price': self.price,
            'lowStockAlert': self.low_stock_alert,
            'isActive': self.is_active,
            'description': self.description,
            'barcode': self.barcode,
            'createdBy': self.created_by,
            'lastModifiedBy': self.last_modified_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    def to_response(self) -> Dict[str, Any]:
        """Diccionario con los campos derivados (para la API)."""
        data = self.to_dict()
        data['isLowStock'] = self.is_low_stock
        data['margin'] = self.margin
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            name=data.get('name', ''),
            category=normalize_category(data.get('category')),
            quantity=max(0, _int(data.get('quantity'))),
            cost=float(data.get('cost') or 0),
            price=float(data.get('price') or 0),
            low_stock_alert=_int(data.get('lowStockAlert'), 5),
            is_active=data.get('isActive', True) is not False,
            description=data.get('description') or '',
            barcode=data.get('barcode'),
            created_by=data.get('createdBy'),
            last_modified_by=data.get('lastModifiedBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE VENTAS
# ==============================================================================

@dataclass
class SaleRecord:
    """
    Registro de venta (cafetería o coworking).

    Invariantes:
        total = subtotal + service_charge + tip
        profit = total - cost
    """
    id: str
    client: str
    service: str
    products: List[LineItem] = field(default_factory=list)
    hours: float = 0
    payment: str = PaymentMethod.CASH.value
    subtotal: float = 0.0
    service_charge: float = 0.0
    tip: float = 0.0
    total: float = 0.0
    cost: float = 0.0
    profit: float = 0.0
    drinks_cost: float = 0.0
    notes: str = ''
    date: Optional[str] = None
    time: Optional[str] = None
    created_by: Optional[str] = None
    session_id: Optional[str] = None
    membership_applied: bool = False
    stock_warnings: List[Dict[str, Any]] = field(default_factory=list)
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def date_value(self) -> Optional[datetime]:
        return parse_iso(self.date)

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'client': self.client,
            'service': enum_value(self.service),
            'products': [p.to_dict() for p in self.products],
            'hours': self.hours,
            'payment': enum_value(self.payment),
            'subtotal': self.subtotal,
            'serviceCharge': self.service_charge,
            'tip': self.tip,
            'total': self.total,
            'cost': self.cost,
            'profit': self.profit,
            'drinksCost': self.drinks_cost,
            'notes': self.notes,
            'date': self.date,
            'time': self.time,
            'createdBy': self.created_by,
            'sessionId': self.session_id,
            'membershipApplied': self.membership_applied,
            'stockWarnings': list(self.stock_warnings),
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SaleRecord':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            client=data.get('client', ''),
            service=str(data.get('service') or ServiceType.CAFETERIA.value),
            products=[LineItem.from_dict(p) for p in data.get('products') or []],
            hours=data.get('hours') or 0,
            payment=normalize_payment(data.get('payment')) or PaymentMethod.CASH.value,
            subtotal=_money(data.get('subtotal')),
            service_charge=_money(data.get('serviceCharge')),
            tip=_money(data.get('tip')),
            total=_money(data.get('total')),
            cost=_money(data.get('cost')),
            profit=_money(data.get('profit')),
            drinks_cost=_money(data.get('drinksCost')),
            notes=data.get('notes') or '',
            date=data.get('date'),
            time=data.get('time'),
            created_by=data.get('createdBy'),
            session_id=data.get('sessionId'),
            membership_applied=bool(data.get('membershipApplied', False)),
            stock_warnings=list(data.get('stockWarnings') or []),
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE COWORKING
# ==============================================================================

@dataclass
class CoworkingSession:
    """
    Sesión de coworking abierta por un cliente.

    El tiempo transcurrido excluye las pausas: paused_duration acumula
    los milisegundos pausados al reanudar. Mientras la sesión está viva
    los valores derivados se recalculan en cada lectura; cerrada o
    cancelada, quedan congelados.
    """
    id: str
    client: str
    start_time: str
    end_time: Optional[str] = None
    paused_at: Optional[str] = None
    paused_duration: int = 0
    duration: int = 0
    hourly_rate: float = 72.0
    status: str = SessionStatus.ACTIVE.value
    notes: str = ''
    products: List[LineItem] = field(default_factory=list)
    subtotal: float = 0.0
    time_charge: float = 0.0
    applied_rate: str = AppliedRate.HOURLY.value
    total: float = 0.0
    cost: float = 0.0
    profit: float = 0.0
    payment: Optional[str] = None
    record_id: Optional[str] = None
    stock_warnings: List[Dict[str, Any]] = field(default_factory=list)
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status in (SessionStatus.ACTIVE.value, SessionStatus.PAUSED.value)

    def elapsed_ms(self, now: datetime) -> int:
        """Milisegundos facturables (sin pausas)."""
        if not self.is_open:
            return self.duration
        start = parse_iso(self.start_time)
        if start is None:
            return 0
        reference = now
        if self.status == SessionStatus.PAUSED.value and self.paused_at:
            reference = parse_iso(self.paused_at) or now
        elapsed = int((reference - start).total_seconds() * 1000) - self.paused_duration
        return max(0, elapsed)

    def elapsed_hours(self, now: datetime) -> float:
        return self.elapsed_ms(now) / MS_PER_HOUR

    def billed_hours(self, now: datetime) -> int:
        """Horas enteras (hacia arriba) que se registran en la venta."""
        return max(1, math.ceil(self.elapsed_hours(now)))

    def pause(self, now_iso: str) -> None:
        self.status = SessionStatus.PAUSED.value
        self.paused_at = now_iso

    def resume(self, now: datetime) -> None:
        paused_at = parse_iso(self.paused_at)
        if paused_at is not None:
            self.paused_duration += max(0, int((now - paused_at).total_seconds() * 1000))
        self.paused_at = None
        self.status = SessionStatus.ACTIVE.value

    def find_product(self, product_id: str) -> Optional[LineItem]:
        for item in self.products:
            if item.product_id == product_id:
                return item
        return None

    def add_product(self, item: LineItem) -> None:
        """Agrega una línea; si el producto ya existe, suma cantidades."""
        existing = self.find_product(item.product_id)
        if existing:
            existing.quantity += item.quantity
        else:
            self.products.append(item)

    def remove_product(self, product_id: str, quantity: Optional[int] = None) -> int:
        """
        Quita unidades de una línea.

        Returns:
            Cantidad efectivamente quitada (0 si no estaba)
        """
        existing = self.find_product(product_id)
        if existing is None:
            return 0
        if quantity and quantity < existing.quantity:
            existing.quantity -= quantity
            return quantity
        self.products.remove(existing)
        return existing.quantity

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'client': self.client,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'pausedAt': self.paused_at,
            'pausedDuration': self.paused_duration,
            'duration': self.duration,
            'hourlyRate': self.hourly_rate,
            'status': enum_value(self.status),
            'notes': self.notes,
            'products': [p.to_dict() for p in self.products],
            'subtotal': self.subtotal,
            'timeCharge': self.time_charge,
            'appliedRate': enum_value(self.applied_rate),
            'total': self.total,
            'cost': self.cost,
            'profit': self.profit,
            'payment': enum_value(self.payment),
            'recordId': self.record_id,
            'stockWarnings': list(self.stock_warnings),
            'createdBy': self.created_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CoworkingSession':
        """Crea instancia desde diccionario."""
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            client=data.get('client') or data.get('clientName') or '',
            start_time=data.get('startTime') or '',
            end_time=data.get('endTime'),
            paused_at=data.get('pausedAt'),
            paused_duration=_int(data.get('pausedDuration')),
            duration=_int(data.get('duration')),
            hourly_rate=float(data.get('hourlyRate') or 72),
            status=normalize_session_status(data.get('status')),
            notes=data.get('notes') or '',
            products=[LineItem.from_dict(p) for p in data.get('products') or []],
            subtotal=_money(data.get('subtotal')),
            time_charge=_money(data.get('timeCharge')),
            applied_rate=data.get('appliedRate') or AppliedRate.HOURLY.value,
            total=_money(data.get('total')),
            cost=_money(data.get('cost')),
            profit=_money(data.get('profit')),
            payment=normalize_payment(data.get('payment')),
            record_id=data.get('recordId'),
            stock_warnings=list(data.get('stockWarnings') or []),
            created_by=data.get('createdBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE CLIENTES
# ==============================================================================

def _default_payment_stats() -> Dict[str, int]:
    return {m.value: 0 for m in PaymentMethod}


@dataclass
class Customer:
    """
    Cliente con estadísticas acumuladas (visitas, gasto, lealtad,
    preferencias) y estado de membresía.
    """
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: str = ''
    status: str = 'active'
    preferred_services: List[str] = field(default_factory=list)
    total_visits: int = 0
    first_visit: Optional[str] = None
    last_visit: Optional[str] = None
    total_spent: float = 0.0
    average_spent: float = 0.0
    total_sessions: int = 0
    total_hours: float = 0
    average_session_duration: float = 0.0
    product_statistics: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    payment_statistics: Dict[str, int] = field(default_factory=_default_payment_stats)
    weekday_preferences: Dict[str, int] = field(default_factory=dict)
    loyalty_points: int = 0
    loyalty_tier: str = LoyaltyTier.BRONZE.value
    membership_status: str = MembershipStatus.NONE.value
    membership_type: Optional[str] = None
    membership_start_date: Optional[str] = None
    membership_end_date: Optional[str] = None
    membership_price: float = 0.0
    membership_benefits_used: float = 0
    has_paid_membership: bool = False
    is_active: bool = True
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    # -------------------------------------------------------------------------
    # Estadísticas
    # -------------------------------------------------------------------------

    def _add_spend(self, amount: float) -> None:
        self.total_visits += 1
        self.total_spent = _money(self.total_spent + amount)
        self.average_spent = _money(self.total_spent / self.total_visits)
        self.loyalty_points += int(math.floor(amount))
        self.loyalty_tier = tier_for_points(self.loyalty_points).value

    def add_visit(self, record: SaleRecord) -> None:
        """Actualiza agregados con una venta nueva."""
        visit_date = record.date_value
        if not self.first_visit:
            self.first_visit = record.date
        self.last_visit = record.date
        self._add_spend(record.total)

        service = enum_value(record.service)
        if service and service not in self.preferred_services:
            self.preferred_services.append(service)

        payment = enum_value(record.payment)
        if payment in self.payment_statistics:
            self.payment_statistics[payment] += 1

        for item in record.products:
            stats = self.product_statistics.setdefault(item.product_id, {
                'name': item.name,
                'quantity': 0,
                'totalSpent': 0.0,
                'category': item.category,
            })
            stats['quantity'] += item.quantity
            stats['totalSpent'] = _money(stats['totalSpent'] + item.line_total)

        if service == ServiceType.COWORKING.value:
            self.total_sessions += 1
            self.total_hours += record.hours or 0
            self.average_session_duration = round(self.total_hours * 60 / self.total_sessions, 2)

        if visit_date is not None:
            weekday = WEEKDAYS[visit_date.weekday()]
            self.weekday_preferences[weekday] = self.weekday_preferences.get(weekday, 0) + 1

    # -------------------------------------------------------------------------
    # Membresía
    # -------------------------------------------------------------------------

    def has_active_membership(self, now: datetime) -> bool:
        if self.membership_status != MembershipStatus.ACTIVE.value:
            return False
        end = parse_iso(self.membership_end_date)
        return end is not None and now <= end

    def activate_membership(
        self,
        membership_type: str,
        price: float,
        start_iso: str,
        end_iso: str
    ) -> None:
        """Activa la membresía; el pago cuenta como visita y suma puntos."""
        self.membership_status = MembershipStatus.ACTIVE.value
        self.membership_type = membership_type
        self.membership_start_date = start_iso
        self.membership_end_date = end_iso
        self.membership_price = _money(price)
        self.membership_benefits_used = 0
        self.has_paid_membership = True
        self._add_spend(price)
        if not self.first_visit:
            self.first_visit = start_iso
        self.last_visit = start_iso

    def use_membership_benefits(self, hours: float) -> None:
        self.membership_benefits_used += hours

    # -------------------------------------------------------------------------
    # Resumen
    # -------------------------------------------------------------------------

    def favorite_products(self, limit: int = 5) -> List[Dict[str, Any]]:
        ranked = sorted(
            ({'productId': pid, **stats} for pid, stats in self.product_statistics.items()),
            key=lambda p: p.get('quantity', 0),
            reverse=True
        )
        return ranked[:limit]

    def preferred_payment(self) -> Optional[str]:
        if not any(self.payment_statistics.values()):
            return None
        return max(self.payment_statistics, key=lambda k: self.payment_statistics[k])

    def days_since_last_visit(self, now: datetime) -> Optional[int]:
        last = parse_iso(self.last_visit)
        if last is None:
            return None
        return max(0, math.ceil((now - last).total_seconds() / 86400))

    def is_at_risk(self, now: datetime) -> bool:
        """Más de 30 días sin visitar."""
        days = self.days_since_last_visit(now)
        return days is not None and days > 30

    def segment(self, now: datetime) -> str:
        if self.has_active_membership(now):
            return 'vip'
        if self.total_visits >= 50 and self.total_spent >= 5000:
            return 'vip'
        if self.total_visits >= 20 and self.total_spent >= 2000:
            return 'loyal'
        if self.total_visits >= 10:
            return 'regular'
        if self.total_visits >= 3:
            return 'occasional'
        return 'new'

    def summary(self, now: datetime) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'segment': self.segment(now),
            'totalVisits': self.total_visits,
            'totalSpent': self.total_spent,
            'averageSpent': self.average_spent,
            'lastVisit': self.last_visit,
            'loyaltyTier': self.loyalty_tier,
            'loyaltyPoints': self.loyalty_points,
            'favoriteProducts': self.favorite_products(3),
            'preferredPayment': self.preferred_payment(),
            'hasActiveMembership': self.has_active_membership(now),
            'isAtRisk': self.is_at_risk(now),
            'daysSinceLastVisit': self.days_since_last_visit(now),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'notes': self.notes,
            'status': self.status,
            'preferredServices': list(self.preferred_services),
            'totalVisits': self.total_visits,
            'firstVisit': self.first_visit,
            'lastVisit': self.last_visit,
            'totalSpent': self.total_spent,
            'averageSpent': self.average_spent,
            'totalSessions': self.total_sessions,
            'totalHours': self.total_hours,
            'averageSessionDuration': self.average_session_duration,
            'productStatistics': self.product_statistics,
            'paymentStatistics': self.payment_statistics,
            'weekdayPreferences': self.weekday_preferences,
            'loyaltyPoints': self.loyalty_points,
            'loyaltyTier': self.loyalty_tier,
            'membershipStatus': self.membership_status,
            'membershipType': self.membership_type,
            'membershipStartDate': self.membership_start_date,
            'membershipEndDate': self.membership_end_date,
            'membershipPrice': self.membership_price,
            'membershipBenefitsUsed': self.membership_benefits_used,
            'hasPaidMembership': self.has_paid_membership,
            'isActive': self.is_active,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdBy': self.created_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Customer':
        """Crea instancia desde diccionario."""
        payments = _default_payment_stats()
        for key, count in (data.get('paymentStatistics') or {}).items():
            method = normalize_payment(key)
            if method in payments:
                payments[method] += _int(count)

        points = _int(data.get('loyaltyPoints'))
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            name=data.get('name', ''),
            email=data.get('email'),
            phone=data.get('phone'),
            notes=data.get('notes') or '',
            status=data.get('status') or 'active',
            preferred_services=list(data.get('preferredServices') or []),
            total_visits=_int(data.get('totalVisits')),
            first_visit=data.get('firstVisit'),
            last_visit=data.get('lastVisit'),
            total_spent=_money(data.get('totalSpent')),
            average_spent=_money(data.get('averageSpent')),
            total_sessions=_int(data.get('totalSessions')),
            total_hours=data.get('totalHours') or 0,
            average_session_duration=float(data.get('averageSessionDuration') or 0),
            product_statistics=dict(data.get('productStatistics') or {}),
            payment_statistics=payments,
            weekday_preferences=dict(data.get('weekdayPreferences') or {}),
            loyalty_points=points,
            loyalty_tier=tier_for_points(points).value,
            membership_status=data.get('membershipStatus') or MembershipStatus.NONE.value,
            membership_type=data.get('membershipType'),
            membership_start_date=data.get('membershipStartDate'),
            membership_end_date=data.get('membershipEndDate'),
            membership_price=_money(data.get('membershipPrice')),
            membership_benefits_used=data.get('membershipBenefitsUsed') or 0,
            has_paid_membership=bool(data.get('hasPaidMembership', False)),
            is_active=data.get('isActive', True) is not False,
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_by=data.get('createdBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE MEMBRESÍAS
# ==============================================================================

@dataclass
class Membership:
    """Membresía pagada (registro independiente del cliente)."""
    id: str
    client_name: str
    membership_type: str
    price: float
    start_date: str
    end_date: str
    customer_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    plan: str = ''
    status: str = MembershipRecordStatus.ACTIVE.value
    payment_method: str = PaymentMethod.CASH.value
    payment_history: List[Dict[str, Any]] = field(default_factory=list)
    usage: Dict[str, Any] = field(default_factory=lambda: {'totalHours': 0, 'lastUsed': None})
    notes: str = ''
    created_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def days_remaining(self, now: datetime) -> int:
        if self.status != MembershipRecordStatus.ACTIVE.value:
            return 0
        end = parse_iso(self.end_date)
        if end is None:
            return 0
        return max(0, math.ceil((end - now).total_seconds() / 86400))

    def is_expired_at(self, now: datetime) -> bool:
        end = parse_iso(self.end_date)
        return end is not None and end < now

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'clientName': self.client_name,
            'customerId': self.customer_id,
            'email': self.email,
            'phone': self.phone,
            'membershipType': enum_value(self.membership_type),
            'plan': self.plan,
            'price': self.price,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'status': enum_value(self.status),
            'paymentMethod': enum_value(self.payment_method),
            'paymentHistory': list(self.payment_history),
            'usage': dict(self.usage),
            'notes': self.notes,
            'createdBy': self.created_by,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Membership':
        """Crea instancia desde diccionario."""
        usage = {'totalHours': 0, 'lastUsed': None}
        usage.update(data.get('usage') or {})
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            client_name=data.get('clientName', ''),
            membership_type=data.get('membershipType') or MembershipType.MONTHLY.value,
            price=_money(data.get('price')),
            start_date=data.get('startDate') or '',
            end_date=data.get('endDate') or '',
            customer_id=data.get('customerId'),
            email=data.get('email'),
            phone=data.get('phone'),
            plan=data.get('plan') or '',
            status=data.get('status') or MembershipRecordStatus.ACTIVE.value,
            payment_method=normalize_payment(data.get('paymentMethod')) or PaymentMethod.CASH.value,
            payment_history=list(data.get('paymentHistory') or []),
            usage=usage,
            notes=data.get('notes') or '',
            created_by=data.get('createdBy'),
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE CAJA Y GASTOS
# ==============================================================================

@dataclass
class CashCut:
    """Corte de caja sobre un periodo [start_date, end_date]."""
    id: str
    start_date: str
    end_date: str
    cut_type: str = CashCutType.MANUAL.value
    total_records: int = 0
    total_income: float = 0.0
    total_cost: float = 0.0
    total_profit: float = 0.0
    average_ticket: float = 0.0
    total_tips: float = 0.0
    payment_breakdown: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    service_breakdown: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    top_products: List[Dict[str, Any]] = field(default_factory=list)
    expenses_total: float = 0.0
    net_cash: float = 0.0
    notes: str = ''
    created_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'cutType': enum_value(self.cut_type),
            'startDate': self.start_date,
            'endDate': self.end_date,
            'totalRecords': self.total_records,
            'totalIncome': self.total_income,
            'totalCost': self.total_cost,
            'totalProfit': self.total_profit,
            'averageTicket': self.average_ticket,
            'totalTips': self.total_tips,
            'paymentBreakdown': self.payment_breakdown,
            'serviceBreakdown': self.service_breakdown,
            'topProducts': list(self.top_products),
            'expensesTotal': self.expenses_total,
            'netCash': self.net_cash,
            'notes': self.notes,
            'createdBy': self.created_by,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CashCut':
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            start_date=data.get('startDate') or '',
            end_date=data.get('endDate') or '',
            cut_type=data.get('cutType') or CashCutType.MANUAL.value,
            total_records=_int(data.get('totalRecords')),
            total_income=_money(data.get('totalIncome')),
            total_cost=_money(data.get('totalCost')),
            total_profit=_money(data.get('totalProfit')),
            average_ticket=_money(data.get('averageTicket')),
            total_tips=_money(data.get('totalTips')),
            payment_breakdown=dict(data.get('paymentBreakdown') or {}),
            service_breakdown=dict(data.get('serviceBreakdown') or {}),
            top_products=list(data.get('topProducts') or []),
            expenses_total=_money(data.get('expensesTotal')),
            net_cash=_money(data.get('netCash')),
            notes=data.get('notes') or '',
            created_by=data.get('createdBy'),
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_at=data.get('createdAt'),
        )


@dataclass
class Expense:
    """Gasto del negocio (renta, sueldos, insumos...)."""
    id: str
    amount: float
    description: str
    category: str = ExpenseCategory.OTHER.value
    date: Optional[str] = None
    type: str = ExpenseType.ONE_TIME.value
    recurrence_frequency: Optional[str] = None
    payment_method: str = PaymentMethod.CASH.value
    status: str = ExpenseStatus.PAID.value
    supplier: str = ''
    notes: str = ''
    created_by: Optional[str] = None
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'amount': self.amount,
            'description': self.description,
            'category': enum_value(self.category),
            'date': self.date,
            'type': enum_value(self.type),
            'recurrenceFrequency': self.recurrence_frequency,
            'paymentMethod': enum_value(self.payment_method),
            'status': enum_value(self.status),
            'supplier': self.supplier,
            'notes': self.notes,
            'createdBy': self.created_by,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Expense':
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            amount=_money(data.get('amount')),
            description=data.get('description') or '',
            category=data.get('category') or ExpenseCategory.OTHER.value,
            date=data.get('date'),
            type=data.get('type') or ExpenseType.ONE_TIME.value,
            recurrence_frequency=data.get('recurrenceFrequency'),
            payment_method=normalize_payment(data.get('paymentMethod')) or PaymentMethod.CASH.value,
            status=data.get('status') or ExpenseStatus.PAID.value,
            supplier=data.get('supplier') or '',
            notes=data.get('notes') or '',
            created_by=data.get('createdBy'),
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_at=data.get('createdAt'),
            updated_at=data.get('updatedAt'),
        )


# ==============================================================================
# ENTIDADES DE USUARIO
# ==============================================================================

# Permisos por defecto de cada rol
ROLE_PERMISSIONS = {
    UserRole.ADMIN.value: ['read', 'write', 'delete', 'manage_users', 'reports'],
    UserRole.MANAGER.value: ['read', 'write', 'delete', 'reports'],
    UserRole.EMPLOYEE.value: ['read', 'write'],
}


@dataclass
class User:
    """
    Usuario del sistema.

    Attributes:
        email: Identificador único (en minúsculas)
        password_hash: Hash de la contraseña (nunca almacenar en texto plano)
        role: Rol del usuario que define sus permisos
    """
    id: str
    name: str
    email: str
    password_hash: str
    role: str = UserRole.EMPLOYEE.value
    permissions: List[str] = field(default_factory=list)
    is_active: bool = True
    is_deleted: bool = False
    deleted_at: Optional[str] = None
    deleted_by: Optional[str] = None
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    def is_admin(self) -> bool:
        """Verifica si el usuario tiene permisos de administrador."""
        return self.role == UserRole.ADMIN.value

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a diccionario para persistencia."""
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'passwordHash': self.password_hash,
            'role': enum_value(self.role),
            'permissions': list(self.permissions),
            'isActive': self.is_active,
            'isDeleted': self.is_deleted,
            'deletedAt': self.deleted_at,
            'deletedBy': self.deleted_by,
            'createdAt': self.created_at,
            'lastLogin': self.last_login,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Igual que to_dict pero sin el hash."""
        data = self.to_dict()
        data.pop('passwordHash', None)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'User':
        """Crea instancia desde diccionario."""
        role = data.get('role') or UserRole.EMPLOYEE.value
        if role not in ROLE_PERMISSIONS:
            role = UserRole.EMPLOYEE.value
        return cls(
            id=str(data.get('id') or data.get('_id') or ''),
            name=data.get('name', ''),
            email=(data.get('email') or '').lower(),
            password_hash=data.get('passwordHash') or data.get('password') or '',
            role=role,
            permissions=list(data.get('permissions') or ROLE_PERMISSIONS[role]),
            is_active=data.get('isActive', True) is not False,
            is_deleted=bool(data.get('isDeleted', False)),
            deleted_at=data.get('deletedAt'),
            deleted_by=data.get('deletedBy'),
            created_at=data.get('createdAt'),
            last_login=data.get('lastLogin'),
        )
