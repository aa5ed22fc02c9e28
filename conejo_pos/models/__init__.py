# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Entidades del dominio como dataclasses, independientes del backend
# (JSON o SQL). Los documentos persistidos usan nombres camelCase.
# ==============================================================================

from .entities import (
    # Enumeraciones
    ProductCategory,
    ServiceType,
    PaymentMethod,
    SessionStatus,
    AppliedRate,
    LoyaltyTier,
    MembershipStatus,
    MembershipRecordStatus,
    MembershipType,
    CashCutType,
    ExpenseCategory,
    ExpenseStatus,
    ExpenseType,
    UserRole,

    # Inventario y ventas
    Product,
    LineItem,
    SaleRecord,

    # Coworking
    CoworkingSession,

    # Clientes y membresías
    Customer,
    Membership,

    # Caja y gastos
    CashCut,
    Expense,

    # Usuarios
    User,

    # Constantes y helpers
    MEMBERSHIP_DURATION_DAYS,
    ROLE_PERMISSIONS,
    tier_for_points,
    enum_value,
)

__all__ = [
    'ProductCategory',
    'ServiceType',
    'PaymentMethod',
    'SessionStatus',
    'AppliedRate',
    'LoyaltyTier',
    'MembershipStatus',
    'MembershipRecordStatus',
    'MembershipType',
    'CashCutType',
    'ExpenseCategory',
    'ExpenseStatus',
    'ExpenseType',
    'UserRole',
    'Product',
    'LineItem',
    'SaleRecord',
    'CoworkingSession',
    'Customer',
    'Membership',
    'CashCut',
    'Expense',
    'User',
    'MEMBERSHIP_DURATION_DAYS',
    'ROLE_PERMISSIONS',
    'tier_for_points',
    'enum_value',
]
