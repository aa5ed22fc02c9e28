# ==============================================================================
# SERVICIO DE CORTES DE CAJA
# ==============================================================================
# Un corte resume los registros del periodo [start, end]. Por defecto el
# periodo empieza donde terminó el corte anterior y termina ahora.
# ==============================================================================

from datetime import datetime
from typing import Callable, List, Optional

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import CashCut, CashCutType
from conejo_pos.repositories.cashcut_repository import CashCutRepository
from conejo_pos.repositories.expense_repository import ExpenseRepository
from conejo_pos.repositories.sales_repository import SalesRepository
from conejo_pos.services.pricing import round_money
from conejo_pos.services.report_service import summarize_expenses, summarize_records
from conejo_pos.utils.dates import parse_iso, to_iso, utcnow
from conejo_pos.utils.logger import get_logger

logger = get_logger("CashCutService")

VALID_CUT_TYPES = frozenset(t.value for t in CashCutType)


class CashCutService:
    """Servicio de cortes de caja."""

    def __init__(
        self,
        cashcut_repo: CashCutRepository,
        sales_repo: SalesRepository,
        expense_repo: ExpenseRepository,
        clock: Callable = utcnow
    ):
        self.cashcut_repo = cashcut_repo
        self.sales_repo = sales_repo
        self.expense_repo = expense_repo
        self.clock = clock

    def _default_start(self) -> Optional[datetime]:
        latest = self.cashcut_repo.get_latest()
        return parse_iso(latest.end_date) if latest else None

    def create_cash_cut(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        cut_type: str = CashCutType.MANUAL.value,
        notes: str = '',
        actor: Optional[str] = None
    ) -> CashCut:
        """
        Crea un corte de caja.

        Args:
            start: Inicio del periodo (default: fin del corte anterior)
            end: Fin del periodo (default: ahora)
            cut_type: 'manual' | 'automatic'

        Raises:
            ValidationError: Tipo inválido o start > end
        """
        if cut_type not in VALID_CUT_TYPES:
            raise ValidationError(f"Tipo de corte inválido: {cut_type!r}")
        end = end or self.clock()
        start = start or self._default_start()
        if start is not None and start > end:
            raise ValidationError('La fecha inicial no puede ser mayor a la final')

        records = self.sales_repo.get_by_date_range(start, end)
        # Evitar contar dos veces el registro justo en el borde del corte anterior
        if start is not None:
            records = [r for r in records if r.date_value > start]
        if start is None and records:
            start = min(r.date_value for r in records)
        start = start or end

        summary = summarize_records(records)
        expenses = summarize_expenses(self.expense_repo.get_by_date_range(start, end))

        cut = self.cashcut_repo.create({
            'cutType': cut_type,
            'startDate': to_iso(start),
            'endDate': to_iso(end),
            **summary,
            'expensesTotal': expenses['total'],
            'netCash': round_money(summary['totalIncome'] - expenses['total']),
            'notes': notes or '',
            'createdBy': actor,
        })
        logger.info(
            f"Corte de caja {cut.id}: {cut.total_records} registros, "
            f"ingreso={cut.total_income} neto={cut.net_cash}"
        )
        return cut

    def get_cash_cut(self, cut_id: str) -> CashCut:
        return self.cashcut_repo.require(cut_id)

    def list_cash_cuts(self, limit: Optional[int] = None) -> List[CashCut]:
        """Cortes más recientes primero."""
        cuts = sorted(self.cashcut_repo.get_all(), key=lambda c: c.end_date or '', reverse=True)
        return cuts[:limit] if limit else cuts

    def delete_cash_cut(self, cut_id: str, actor: Optional[str] = None) -> CashCut:
        return self.cashcut_repo.soft_delete(cut_id, actor)
