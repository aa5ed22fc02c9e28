# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Construye backend, repositorios y servicios a partir de un Settings
# explícito. Cada instancia se crea una sola vez (lazy) y se comparte.
#
# Selección de backend (fija durante la vida del proceso):
#   DATABASE_URL presente → SQLBackend (SQLAlchemy)
#   si no                 → JSONFileBackend en DATA_PATH
#
# Los tests pasan su propio backend (MemoryBackend, SQLite en memoria...)
# y un reloj fijo.
# ==============================================================================

from typing import Callable, Optional

from conejo_pos.config import Settings
from conejo_pos.repositories import (
    CashCutRepository,
    CustomerRepository,
    ExpenseRepository,
    IStorageBackend,
    MembershipRepository,
    ProductRepository,
    SalesRepository,
    SessionRepository,
    UserRepository,
)
from conejo_pos.repositories.backends import JSONFileBackend, SQLBackend
from conejo_pos.services import (
    BackupService,
    CashCutService,
    CoworkingService,
    CustomerService,
    ExpenseService,
    InventoryService,
    MembershipService,
    ReportService,
    SalesService,
    UserService,
)
from conejo_pos.utils.dates import utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("AppContainer")


def build_backend(settings: Settings) -> IStorageBackend:
    """Backend según la configuración."""
    if settings.use_relational:
        logger.info("Backend relacional (SQLAlchemy)")
        return SQLBackend(settings.database_url, timeout=settings.storage_timeout)
    logger.info(f"Backend de archivos JSON en {settings.data_path}")
    return JSONFileBackend(settings.data_path, timeout=settings.storage_timeout)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Uso:
        container = AppContainer(Settings.from_env())
        sales_service = container.sales_service
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        backend: Optional[IStorageBackend] = None,
        clock: Callable = utcnow
    ):
        """
        Args:
            settings: Configuración (default: valores por defecto)
            backend: Backend ya construido (si no, se elige por settings)
            clock: Reloj inyectable (UTC)
        """
        self.settings = settings or Settings()
        self.clock = clock
        self._backend = backend
        self._instances = {}

    def _lazy(self, name: str, factory: Callable):
        if name not in self._instances:
            self._instances[name] = factory()
        return self._instances[name]

    # =========================================================================
    # BACKEND Y REPOSITORIOS
    # =========================================================================

    @property
    def backend(self) -> IStorageBackend:
        if self._backend is None:
            self._backend = build_backend(self.settings)
        return self._backend

    @property
    def product_repo(self) -> ProductRepository:
        return self._lazy('product_repo', lambda: ProductRepository(self.backend, self.clock))

    @property
    def sales_repo(self) -> SalesRepository:
        return self._lazy('sales_repo', lambda: SalesRepository(self.backend, self.clock))

    @property
    def session_repo(self) -> SessionRepository:
        return self._lazy('session_repo', lambda: SessionRepository(self.backend, self.clock))

    @property
    def customer_repo(self) -> CustomerRepository:
        return self._lazy('customer_repo', lambda: CustomerRepository(self.backend, self.clock))

    @property
    def membership_repo(self) -> MembershipRepository:
        return self._lazy('membership_repo', lambda: MembershipRepository(self.backend, self.clock))

    @property
    def cashcut_repo(self) -> CashCutRepository:
        return self._lazy('cashcut_repo', lambda: CashCutRepository(self.backend, self.clock))

    @property
    def expense_repo(self) -> ExpenseRepository:
        return self._lazy('expense_repo', lambda: ExpenseRepository(self.backend, self.clock))

    @property
    def user_repo(self) -> UserRepository:
        return self._lazy('user_repo', lambda: UserRepository(self.backend, self.clock))

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def inventory_service(self) -> InventoryService:
        return self._lazy('inventory_service', lambda: InventoryService(self.product_repo))

    @property
    def customer_service(self) -> CustomerService:
        return self._lazy(
            'customer_service', lambda: CustomerService(self.customer_repo, self.clock)
        )

    @property
    def membership_service(self) -> MembershipService:
        return self._lazy('membership_service', lambda: MembershipService(
            self.membership_repo, self.customer_service, self.clock
        ))

    @property
    def sales_service(self) -> SalesService:
        return self._lazy('sales_service', lambda: SalesService(
            self.sales_repo,
            self.inventory_service,
            self.customer_service,
            self.membership_service,
            hourly_rate=self.settings.coworking_hourly_rate,
            clock=self.clock,
        ))

    @property
    def coworking_service(self) -> CoworkingService:
        return self._lazy('coworking_service', lambda: CoworkingService(
            self.session_repo,
            self.inventory_service,
            self.sales_service,
            self.customer_service,
            default_hourly_rate=self.settings.session_hourly_rate,
            day_rate=self.settings.day_rate,
            day_rate_threshold_hours=self.settings.day_rate_threshold_hours,
            clock=self.clock,
        ))

    @property
    def report_service(self) -> ReportService:
        return self._lazy('report_service', lambda: ReportService(
            self.sales_repo, self.expense_repo, self.clock
        ))

    @property
    def cashcut_service(self) -> CashCutService:
        return self._lazy('cashcut_service', lambda: CashCutService(
            self.cashcut_repo, self.sales_repo, self.expense_repo, self.clock
        ))

    @property
    def expense_service(self) -> ExpenseService:
        return self._lazy('expense_service', lambda: ExpenseService(self.expense_repo, self.clock))

    @property
    def user_service(self) -> UserService:
        return self._lazy('user_service', lambda: UserService(self.user_repo, self.clock))

    @property
    def backup_service(self) -> Optional[BackupService]:
        """Solo existe con el backend de archivos JSON."""
        if not isinstance(self.backend, JSONFileBackend):
            return None
        return self._lazy('backup_service', lambda: BackupService(
            self.backend, max_backups=self.settings.backup_max, clock=self.clock
        ))

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """Descarta las instancias creadas (el backend se conserva)."""
        self._instances = {}

    def close(self) -> None:
        if self._backend is not None:
            self._backend.close()
        self._instances = {}
