# ==============================================================================
# SERVICES - Reglas de negocio
# ==============================================================================

from .backup_service import BackupService
from .cashcut_service import CashCutService
from .coworking_service import CoworkingService
from .customer_service import CustomerService
from .expense_service import ExpenseService
from .inventory_service import InventoryService
from .membership_service import MembershipService
from .report_service import ReportService
from .sales_service import SalesService
from .user_service import UserService

__all__ = [
    'BackupService',
    'CashCutService',
    'CoworkingService',
    'CustomerService',
    'ExpenseService',
    'InventoryService',
    'MembershipService',
    'ReportService',
    'SalesService',
    'UserService',
]
