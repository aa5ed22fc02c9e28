# ==============================================================================
# REPOSITORIO DE GASTOS
# ==============================================================================

from datetime import datetime
from typing import List, Optional

from conejo_pos.models.entities import Expense
from conejo_pos.utils.dates import parse_iso

from .base import BaseRepository


class ExpenseRepository(BaseRepository[Expense]):
    """Colección 'expenses'."""

    collection = 'expenses'
    entity_cls = Expense
    id_prefix = 'expense'
    entity_name = 'Gasto'

    def get_by_date_range(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> List[Expense]:
        result = []
        for expense in self.get_all():
            date = parse_iso(expense.date)
            if date is None:
                continue
            if start is not None and date < start:
                continue
            if end is not None and date > end:
                continue
            result.append(expense)
        return result

    def get_by_category(self, category: str) -> List[Expense]:
        return self.get_all(filters={'category': category})
