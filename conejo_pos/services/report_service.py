# ==============================================================================
# SERVICIO DE REPORTES
# ==============================================================================
# Reportes financieros sobre registros NO eliminados. Los ingresos salen
# solo de los registros: las sesiones cerradas ya emitieron el suyo, así
# que no se suman por separado.
# ==============================================================================

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from conejo_pos.errors import ValidationError
from conejo_pos.models.entities import Expense, SaleRecord
from conejo_pos.repositories.expense_repository import ExpenseRepository
from conejo_pos.repositories.sales_repository import SalesRepository
from conejo_pos.services.pricing import round_money
from conejo_pos.utils.dates import end_of_day, start_of_day, to_iso, utcnow


def summarize_records(records: Iterable[SaleRecord], top: int = 5) -> Dict[str, Any]:
    """
    Agregados de un conjunto de registros (compartido con cortes de caja).

    Returns:
        Dict con totalRecords, totalIncome, totalCost, totalProfit,
        averageTicket, totalTips, paymentBreakdown, serviceBreakdown y
        topProducts (por cantidad)
    """
    records = list(records)
    payment = defaultdict(lambda: {'count': 0, 'amount': 0.0})
    service = defaultdict(lambda: {'count': 0, 'amount': 0.0})
    products: Dict[str, Dict[str, Any]] = {}

    for record in records:
        payment[record.payment]['count'] += 1
        payment[record.payment]['amount'] += record.total
        service[record.service]['count'] += 1
        service[record.service]['amount'] += record.total
        for item in record.products:
            entry = products.setdefault(item.product_id, {
                'productId': item.product_id,
                'name': item.name,
                'quantity': 0,
                'revenue': 0.0,
            })
            entry['quantity'] += item.quantity
            entry['revenue'] += item.line_total

    income = round_money(sum(r.total for r in records))
    top_products = sorted(products.values(), key=lambda p: p['quantity'], reverse=True)[:top]

    return {
        'totalRecords': len(records),
        'totalIncome': income,
        'totalCost': round_money(sum(r.cost for r in records)),
        'totalProfit': round_money(sum(r.profit for r in records)),
        'averageTicket': round_money(income / len(records)) if records else 0.0,
        'totalTips': round_money(sum(r.tip for r in records)),
        'paymentBreakdown': {
            k: {'count': v['count'], 'amount': round_money(v['amount'])} for k, v in payment.items()
        },
        'serviceBreakdown': {
            k: {'count': v['count'], 'amount': round_money(v['amount'])} for k, v in service.items()
        },
        'topProducts': [
            {**p, 'revenue': round_money(p['revenue'])} for p in top_products
        ],
    }


def summarize_expenses(expenses: Iterable[Expense]) -> Dict[str, Any]:
    expenses = list(expenses)
    by_category = defaultdict(float)
    by_status = defaultdict(float)
    for expense in expenses:
        by_category[expense.category] += expense.amount
        by_status[expense.status] += expense.amount
    return {
        'total': round_money(sum(e.amount for e in expenses)),
        'count': len(expenses),
        'byCategory': {k: round_money(v) for k, v in by_category.items()},
        'byStatus': {k: round_money(v) for k, v in by_status.items()},
    }


class ReportService:
    """
    Servicio de reportes financieros.

    Uso:
        report = report_service.get_financial_report(start, end)
        report['profit']['net']
    """

    def __init__(
        self,
        sales_repo: SalesRepository,
        expense_repo: ExpenseRepository,
        clock: Callable = utcnow
    ):
        self.sales_repo = sales_repo
        self.expense_repo = expense_repo
        self.clock = clock

    def get_financial_report(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Reporte de ingresos, gastos y utilidad del periodo [start, end].

        Raises:
            ValidationError: Si start > end
        """
        if start and end and start > end:
            raise ValidationError('La fecha inicial no puede ser mayor a la final')

        records = self.sales_repo.get_by_date_range(start, end)
        expenses = self.expense_repo.get_by_date_range(start, end)
        summary = summarize_records(records)
        expense_summary = summarize_expenses(expenses)

        income = summary['totalIncome']
        net = round_money(income - expense_summary['total'])
        return {
            'period': {'start': to_iso(start), 'end': to_iso(end)},
            'income': {
                'total': income,
                'byService': {k: v['amount'] for k, v in summary['serviceBreakdown'].items()},
                'byPayment': {k: v['amount'] for k, v in summary['paymentBreakdown'].items()},
                'tips': summary['totalTips'],
            },
            'expenses': expense_summary,
            'profit': {
                'gross': summary['totalProfit'],
                'net': net,
                'margin': round_money(net / income * 100) if income else 0.0,
            },
            'counts': {
                'records': summary['totalRecords'],
                'expenses': expense_summary['count'],
            },
            'averageTicket': summary['averageTicket'],
            'topProducts': summary['topProducts'],
        }

    def get_daily_stats(self, days: int = 7) -> List[Dict[str, Any]]:
        """Ingresos y utilidad por día de los últimos `days` días (hoy incluido)."""
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValidationError('days debe ser un entero >= 1')

        today = start_of_day(self.clock())
        first = today - timedelta(days=days - 1)
        records = self.sales_repo.get_by_date_range(first, end_of_day(today))

        buckets: Dict[str, List[SaleRecord]] = {
            (first + timedelta(days=i)).date().isoformat(): [] for i in range(days)
        }
        for record in records:
            key = record.date_value.date().isoformat()
            if key in buckets:
                buckets[key].append(record)

        stats = []
        for day, day_records in buckets.items():
            summary = summarize_records(day_records)
            stats.append({
                'date': day,
                'records': summary['totalRecords'],
                'income': summary['totalIncome'],
                'profit': summary['totalProfit'],
                'byService': {k: v['amount'] for k, v in summary['serviceBreakdown'].items()},
            })
        return stats

    def get_today_summary(self) -> Dict[str, Any]:
        now = self.clock()
        start, end = start_of_day(now), end_of_day(now)
        summary = summarize_records(self.sales_repo.get_by_date_range(start, end))
        expenses = summarize_expenses(self.expense_repo.get_by_date_range(start, end))
        summary['date'] = now.date().isoformat()
        summary['expensesTotal'] = expenses['total']
        summary['netCash'] = round_money(summary['totalIncome'] - expenses['total'])
        return summary
