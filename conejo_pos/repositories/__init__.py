# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia. Cada repositorio
# es dueño de una colección y habla solo con un IStorageBackend.
#
# ESTRUCTURA:
# ├── interfaces.py             → Protocolos (IStorageBackend, IRepository)
# ├── base.py                   → BaseRepository (CRUD + eliminación lógica)
# ├── backends/                 → JSON, SQL y memoria
# ├── product_repository.py     → products
# ├── sales_repository.py       → records
# ├── session_repository.py     → coworking_sessions
# ├── customer_repository.py    → customers
# ├── membership_repository.py  → memberships
# ├── cashcut_repository.py     → cashcuts
# ├── expense_repository.py     → expenses
# └── user_repository.py        → users
#
# Los repositorios nunca se llaman entre sí.
# ==============================================================================

from .interfaces import IStorageBackend, IRepository, IProductRepository

from .base import BaseRepository
from .product_repository import ProductRepository, STOCK_OPERATIONS
from .sales_repository import SalesRepository
from .session_repository import SessionRepository
from .customer_repository import CustomerRepository
from .membership_repository import MembershipRepository
from .cashcut_repository import CashCutRepository
from .expense_repository import ExpenseRepository
from .user_repository import UserRepository

__all__ = [
    # Interfaces
    'IStorageBackend',
    'IRepository',
    'IProductRepository',

    # Clase base
    'BaseRepository',

    # Implementaciones
    'ProductRepository',
    'STOCK_OPERATIONS',
    'SalesRepository',
    'SessionRepository',
    'CustomerRepository',
    'MembershipRepository',
    'CashCutRepository',
    'ExpenseRepository',
    'UserRepository',
]
