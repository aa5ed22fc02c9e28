# ==============================================================================
# SERVICIO DE GASTOS
# ==============================================================================

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import (
    Expense,
    ExpenseCategory,
    ExpenseStatus,
    ExpenseType,
    PaymentMethod,
)
from conejo_pos.repositories.expense_repository import ExpenseRepository
from conejo_pos.services.pricing import round_money
from conejo_pos.services.report_service import summarize_expenses
from conejo_pos.utils.dates import parse_iso, to_iso, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("ExpenseService")

VALID_CATEGORIES = frozenset(c.value for c in ExpenseCategory)
VALID_STATUSES = frozenset(s.value for s in ExpenseStatus)
VALID_TYPES = frozenset(t.value for t in ExpenseType)
VALID_PAYMENTS = frozenset(m.value for m in PaymentMethod)

# Campos editables
EXPENSE_FIELDS = (
    'amount', 'description', 'category', 'date', 'type', 'recurrenceFrequency',
    'paymentMethod', 'status', 'supplier', 'notes',
)


class ExpenseService:
    """
    Servicio para gestión de gastos.

    Responsabilidades:
    - Alta/edición/borrado lógico con validación
    - Listados por periodo, categoría o estado
    - Estadísticas por categoría y estado
    """

    def __init__(self, expense_repo: ExpenseRepository, clock: Callable = utcnow):
        self.expense_repo = expense_repo
        self.clock = clock

    def _validate(self, data: Dict[str, Any], partial: bool = False) -> List[str]:
        errors = []
        if not partial or 'amount' in data:
            amount = data.get('amount')
            if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
                errors.append('El monto debe ser mayor a 0')
        if not partial or 'description' in data:
            description = data.get('description')
            if not isinstance(description, str) or not description.strip():
                errors.append('La descripción es requerida')
        if not partial or 'category' in data:
            if data.get('category') not in VALID_CATEGORIES:
                errors.append(f"Categoría inválida: {data.get('category')!r}")
        if 'paymentMethod' in data and data['paymentMethod'] not in VALID_PAYMENTS:
            errors.append(f"Método de pago inválido: {data['paymentMethod']!r}")
        if 'status' in data and data['status'] not in VALID_STATUSES:
            errors.append(f"Estado inválido: {data['status']!r}")
        if 'type' in data and data['type'] not in VALID_TYPES:
            errors.append(f"Tipo inválido: {data['type']!r}")
        if data.get('date') and parse_iso(data['date']) is None:
            errors.append(f"Fecha inválida: {data['date']!r}")
        return errors

    def _clean(self, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = {k: data[k] for k in EXPENSE_FIELDS if k in data}
        if 'amount' in doc:
            doc['amount'] = round_money(doc['amount'])
        if doc.get('date'):
            doc['date'] = to_iso(parse_iso(doc['date']))
        if 'description' in doc:
            doc['description'] = doc['description'].strip()
        return doc

    def create_expense(self, data: Dict[str, Any], actor: Optional[str] = None) -> Expense:
        """
        Registra un gasto.

        Raises:
            ValidationError: Monto <= 0, descripción faltante o enums inválidos
        """
        errors = self._validate(data)
        if errors:
            raise ValidationError(errors)
        doc = self._clean(data)
        doc.setdefault('date', to_iso(self.clock()))
        doc['createdBy'] = actor
        expense = self.expense_repo.create(doc)
        logger.info(f"Gasto registrado: {expense.category} {expense.amount} ({expense.id})")
        return expense

    def update_expense(
        self,
        expense_id: str,
        updates: Dict[str, Any],
        actor: Optional[str] = None
    ) -> Expense:
        errors = self._validate(updates, partial=True)
        if errors:
            raise ValidationError(errors)
        return self.expense_repo.update(expense_id, self._clean(updates))

    def delete_expense(self, expense_id: str, actor: Optional[str] = None) -> Expense:
        expense = self.expense_repo.soft_delete(expense_id, actor)
        logger.info(f"Gasto eliminado: {expense.id} por {actor or 'sistema'}")
        return expense

    def get_expense(self, expense_id: str) -> Expense:
        return self.expense_repo.require(expense_id)

    def list_expenses(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        category: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Expense]:
        expenses = self.expense_repo.get_by_date_range(start, end)
        if category:
            expenses = [e for e in expenses if e.category == category]
        if status:
            expenses = [e for e in expenses if e.status == status]
        return expenses

    def get_expense_stats(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        return summarize_expenses(self.expense_repo.get_by_date_range(start, end))
