# ==============================================================================
# DATABASE MANAGER - Fachada única del núcleo
# ==============================================================================
# Punto de entrada para cualquier cliente (API Flask, scripts, tests).
# Se construye UNA vez desde un Settings explícito; cada operación delega
# en el servicio correspondiente. El comportamiento es idéntico para los
# backends JSON, SQL y memoria.
#
#   caller → DatabaseManager → servicio → repositorio → backend
# ==============================================================================

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from conejo_pos.app_container import AppContainer
from conejo_pos.config import Settings
from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import (
    CashCut,
    CoworkingSession,
    Customer,
    Expense,
    Membership,
    Product,
    SaleRecord,
    User,
)
from conejo_pos.repositories.interfaces import IStorageBackend
from conejo_pos.utils.dates import coerce_range_bound, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("DatabaseManager")

DateBound = Union[str, datetime, None]


def _bound(value: DateBound, end: bool = False) -> Optional[datetime]:
    if value is None or value == '':
        return None
    parsed = coerce_range_bound(value, end=end)
    if parsed is None:
        raise ValidationError(f"Fecha inválida: {value!r}")
    return parsed


class DatabaseManager:
    """
    Fachada de persistencia y reglas de negocio.

    Uso:
        manager = DatabaseManager(Settings.from_env())
        record = manager.create_sale({...}, actor='caja1')
        manager.close()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[IStorageBackend] = None,
        clock: Callable = utcnow,
        container: Optional[AppContainer] = None
    ):
        self.container = container or AppContainer(settings, backend=backend, clock=clock)
        self.settings = self.container.settings

    @property
    def backend(self) -> IStorageBackend:
        return self.container.backend

    # =========================================================================
    # VENTAS
    # =========================================================================

    def create_sale(self, data: Dict[str, Any], actor: Optional[str] = None) -> SaleRecord:
        return self.container.sales_service.create_sale(data, actor)

    def get_sale(self, record_id: str) -> SaleRecord:
        return self.container.sales_service.get_sale(record_id)

    def update_sale(
        self,
        record_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> SaleRecord:
        return self.container.sales_service.update_sale(record_id, updates, actor)

    def delete_sale(self, record_id: str, actor: Optional[str] = None) -> SaleRecord:
        return self.container.sales_service.delete_sale(record_id, actor)

    def list_sales(
        self,
        start: DateBound = None,
        end: DateBound = None,
        service: Optional[str] = None,
        client: Optional[str] = None,
        include_deleted: bool = False,
        payment: Optional[str] = None
    ) -> List[SaleRecord]:
        return self.container.sales_service.list_sales(
            _bound(start), _bound(end, end=True), service, client, include_deleted, payment
        )

    # =========================================================================
    # PRODUCTOS
    # =========================================================================

    def create_product(self, data: Dict[str, Any], actor: Optional[str] = None) -> Product:
        return self.container.inventory_service.create_product(data, actor)

    def update_product(
        self,
        product_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Product:
        return self.container.inventory_service.update_product(product_id, updates, actor)

    def adjust_stock(
        self,
        product_id: str,
        amount: int,
        op: str = 'add',
        actor: Optional[str] = None
    ) -> Product:
        return self.container.inventory_service.adjust_stock(product_id, amount, op, actor)

    def soft_delete_product(self, product_id: str, actor: Optional[str] = None) -> Product:
        return self.container.inventory_service.delete_product(product_id, actor)

    def get_product(self, product_id: str) -> Product:
        return self.container.inventory_service.get_product(product_id)

    def list_products(
        self,
        category: Optional[str] = None,
        include_inactive: bool = False
    ) -> List[Product]:
        return self.container.inventory_service.list_products(category, include_inactive)

    def get_low_stock_products(self) -> List[Product]:
        return self.container.inventory_service.get_low_stock()

    # =========================================================================
    # COWORKING
    # =========================================================================

    def open_coworking_session(
        self,
        data: Dict[str, Any],
        actor: Optional[str] = None
    ) -> CoworkingSession:
        return self.container.coworking_service.open_session(data, actor)

    def get_session(self, session_id: str) -> CoworkingSession:
        return self.container.coworking_service.get_session(session_id)

    def list_sessions(self, status: Optional[str] = None) -> List[CoworkingSession]:
        return self.container.coworking_service.list_sessions(status)

    def pause_session(self, session_id: str) -> CoworkingSession:
        return self.container.coworking_service.pause_session(session_id)

    def resume_session(self, session_id: str) -> CoworkingSession:
        return self.container.coworking_service.resume_session(session_id)

    def add_line_item(
        self,
        session_id: str,
        product_id: str,
        quantity: int = 1,
        actor: Optional[str] = None
    ) -> CoworkingSession:
        return self.container.coworking_service.add_line_item(session_id, product_id, quantity, actor)

    def remove_line_item(
        self,
        session_id: str,
        product_id: str,
        quantity: Optional[int] = None
    ) -> CoworkingSession:
        return self.container.coworking_service.remove_line_item(session_id, product_id, quantity)

    def close_session(
        self,
        session_id: str,
        payment: str,
        actor: Optional[str] = None
    ) -> CoworkingSession:
        return self.container.coworking_service.close_session(session_id, payment, actor)

    def cancel_session(self, session_id: str, actor: Optional[str] = None) -> CoworkingSession:
        return self.container.coworking_service.cancel_session(session_id, actor)

    # =========================================================================
    # CLIENTES
    # =========================================================================

    def upsert_customer(self, data: Dict[str, Any], actor: Optional[str] = None) -> Customer:
        return self.container.customer_service.upsert_customer(data, actor)

    def get_customer(self, customer_id: str) -> Customer:
        return self.container.customer_service.get_customer(customer_id)

    def list_customers(self) -> List[Customer]:
        return self.container.customer_service.list_customers()

    def get_customer_summary(self, customer_id: str) -> Dict[str, Any]:
        return self.container.customer_service.get_customer_summary(customer_id)

    def get_customer_stats(self) -> Dict[str, Any]:
        return self.container.customer_service.get_customer_stats()

    def search_customers(self, term: str) -> List[Customer]:
        return self.container.customer_service.search_customers(term)

    def soft_delete_customer(self, customer_id: str, actor: Optional[str] = None) -> Customer:
        return self.container.customer_service.soft_delete_customer(customer_id, actor)

    # =========================================================================
    # MEMBRESÍAS
    # =========================================================================

    def create_membership(self, data: Dict[str, Any], actor: Optional[str] = None) -> Membership:
        return self.container.membership_service.create_membership(data, actor)

    def renew_membership(
        self,
        membership_id: str,
        payment_method: str,
        amount: Optional[float] = None,
        notes: Optional[str] = None,
        actor: Optional[str] = None
    ) -> Membership:
        return self.container.membership_service.renew_membership(
            membership_id, payment_method, amount, notes, actor
        )

    def cancel_membership(
        self,
        membership_id: str,
        reason: str = '',
        actor: Optional[str] = None
    ) -> Membership:
        return self.container.membership_service.cancel_membership(membership_id, reason, actor)

    def get_membership(self, membership_id: str) -> Membership:
        return self.container.membership_service.get_membership(membership_id)

    def list_memberships(
        self,
        status: Optional[str] = None,
        customer_id: Optional[str] = None
    ) -> List[Membership]:
        return self.container.membership_service.list_memberships(status, customer_id)

    def expire_memberships(self) -> List[Membership]:
        return self.container.membership_service.expire_overdue()

    def delete_membership(self, membership_id: str, actor: Optional[str] = None) -> Membership:
        return self.container.membership_service.delete_membership(membership_id, actor)

    # =========================================================================
    # CORTES DE CAJA Y GASTOS
    # =========================================================================

    def create_cash_cut(
        self,
        start: DateBound = None,
        end: DateBound = None,
        cut_type: str = 'manual',
        notes: str = '',
        actor: Optional[str] = None
    ) -> CashCut:
        return self.container.cashcut_service.create_cash_cut(
            _bound(start), _bound(end, end=True), cut_type, notes, actor
        )

    def list_cash_cuts(self, limit: Optional[int] = None) -> List[CashCut]:
        return self.container.cashcut_service.list_cash_cuts(limit)

    def get_cash_cut(self, cut_id: str) -> CashCut:
        return self.container.cashcut_service.get_cash_cut(cut_id)

    def delete_cash_cut(self, cut_id: str, actor: Optional[str] = None) -> CashCut:
        return self.container.cashcut_service.delete_cash_cut(cut_id, actor)

    def create_expense(self, data: Dict[str, Any], actor: Optional[str] = None) -> Expense:
        return self.container.expense_service.create_expense(data, actor)

    def update_expense(
        self,
        expense_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Expense:
        return self.container.expense_service.update_expense(expense_id, updates, actor)

    def delete_expense(self, expense_id: str, actor: Optional[str] = None) -> Expense:
        return self.container.expense_service.delete_expense(expense_id, actor)

    def list_expenses(
        self,
        start: DateBound = None,
        end: DateBound = None,
        category: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Expense]:
        return self.container.expense_service.list_expenses(
            _bound(start), _bound(end, end=True), category, status
        )

    def get_expense_stats(self, start: DateBound = None, end: DateBound = None) -> Dict[str, Any]:
        return self.container.expense_service.get_expense_stats(_bound(start), _bound(end, end=True))

    # =========================================================================
    # REPORTES
    # =========================================================================

    def get_financial_report(self, start: DateBound = None, end: DateBound = None) -> Dict[str, Any]:
        return self.container.report_service.get_financial_report(
            _bound(start), _bound(end, end=True)
        )

    def get_daily_stats(self, days: int = 7) -> List[Dict[str, Any]]:
        return self.container.report_service.get_daily_stats(days)

    def get_today_summary(self) -> Dict[str, Any]:
        return self.container.report_service.get_today_summary()

    # =========================================================================
    # USUARIOS
    # =========================================================================

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str = 'employee',
        actor: Optional[str] = None
    ) -> User:
        return self.container.user_service.create_user(name, email, password, role, actor)

    def list_users(self, include_inactive: bool = False) -> List[User]:
        return self.container.user_service.list_users(include_inactive)

    def deactivate_user(self, user_id: str, actor: Optional[str] = None) -> User:
        return self.container.user_service.deactivate_user(user_id, actor)

    def verify_credentials(self, email: str, password: str) -> Optional[User]:
        return self.container.user_service.verify_credentials(email, password)

    # =========================================================================
    # MANTENIMIENTO
    # =========================================================================

    def run_backup(self, force: bool = False) -> Optional[Dict[str, Any]]:
        """Backup ZIP de los JSON; None con backend relacional."""
        service = self.container.backup_service
        if service is None:
            logger.info("Backup omitido: backend relacional")
            return None
        result = service.create_backup(force=force)
        result['rotation'] = service.rotate_backups()
        return result

    def close(self) -> None:
        self.container.close()
        logger.info("DatabaseManager cerrado")
