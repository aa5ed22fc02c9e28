# ==============================================================================
# REGLAS DE PRECIOS Y COBRO
# ==============================================================================
# Funciones puras (sin repositorios ni reloj). Todo el dinero se redondea
# a 2 decimales con ROUND_HALF_UP.
#
#   total  = subtotal + serviceCharge + tip
#   profit = total - cost
#
# En coworking solo los productos de refrigerador se cobran; el costo de
# los de cafetería se reporta aparte como drinksCost.
# ==============================================================================

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple

from conejo_pos.models.entities import (
    AppliedRate,
    LineItem,
    ProductCategory,
    ServiceType,
    enum_value,
    tier_for_points,
)

_CENT = Decimal('0.01')


def round_money(value) -> float:
    """Redondea a centavos (half-up, no bancario)."""
    return float(Decimal(str(value or 0)).quantize(_CENT, rounding=ROUND_HALF_UP))


@dataclass
class SaleTotals:
    subtotal: float
    service_charge: float
    tip: float
    total: float
    cost: float
    profit: float
    drinks_cost: float

    def to_dict(self) -> dict:
        return {
            'subtotal': self.subtotal,
            'serviceCharge': self.service_charge,
            'tip': self.tip,
            'total': self.total,
            'cost': self.cost,
            'profit': self.profit,
            'drinksCost': self.drinks_cost,
        }


def _is_coworking(service) -> bool:
    return enum_value(service) == ServiceType.COWORKING.value


def products_subtotal(items: Iterable[LineItem], service) -> float:
    """Cafetería cobra todo; coworking solo refrigerador."""
    if _is_coworking(service):
        return round_money(sum(
            i.line_total for i in items
            if i.category == ProductCategory.REFRIGERATOR.value
        ))
    return round_money(sum(i.line_total for i in items))


def products_cost(items: Iterable[LineItem]) -> float:
    return round_money(sum(i.line_cost for i in items))


def drinks_cost(items: Iterable[LineItem], service) -> float:
    """Costo de los productos de cafetería incluidos en un coworking."""
    if not _is_coworking(service):
        return 0.0
    return round_money(sum(
        i.line_cost for i in items
        if i.category == ProductCategory.CAFETERIA.value
    ))


def hourly_charge(hours: float, hourly_rate: float) -> float:
    return round_money(hours * hourly_rate)


def session_time_charge(
    hours: float,
    hourly_rate: float,
    day_rate: float,
    day_rate_threshold_hours: float
) -> Tuple[float, str]:
    """
    Cobro por tiempo de una sesión.

    Returns:
        Tupla (cargo, tarifa aplicada). Más de `day_rate_threshold_hours`
        horas cobra la tarifa de día sin importar la tarifa por hora.
    """
    if hours > day_rate_threshold_hours:
        return round_money(day_rate), AppliedRate.DAY.value
    return hourly_charge(hours, hourly_rate), AppliedRate.HOURLY.value


def compute_sale_totals(
    items: Iterable[LineItem],
    service,
    service_charge: float = 0.0,
    tip: float = 0.0
) -> SaleTotals:
    """Calcula todos los montos derivados de una venta."""
    items = list(items)
    subtotal = products_subtotal(items, service)
    cost = products_cost(items)
    service_charge = round_money(service_charge)
    tip = round_money(tip)
    total = round_money(subtotal + service_charge + tip)
    return SaleTotals(
        subtotal=subtotal,
        service_charge=service_charge,
        tip=tip,
        total=total,
        cost=cost,
        profit=round_money(total - cost),
        drinks_cost=drinks_cost(items, service),
    )


def loyalty_points_for(total: float) -> int:
    """1 punto por peso gastado (parte entera)."""
    return int(math.floor(total or 0))


def loyalty_tier_for(points: float) -> str:
    return tier_for_points(points).value
