# ==============================================================================
# UTILIDADES DE FECHAS
# ==============================================================================
# Todas las fechas se guardan como ISO 8601 en UTC.
# ==============================================================================

from datetime import datetime, time, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Reloj por defecto del sistema (inyectable en servicios)."""
    return datetime.now(timezone.utc)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Serializa un datetime a ISO (asume UTC si no tiene zona)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_iso(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parsea una fecha ISO. Retorna None si no puede parsear.
    Acepta el sufijo 'Z' y fechas sin zona (se asumen UTC).
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (ValueError, TypeError):
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo or timezone.utc)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo or timezone.utc)


def coerce_range_bound(value: Union[str, datetime, None], end: bool = False) -> Optional[datetime]:
    """
    Convierte un límite de rango (fecha 'YYYY-MM-DD' o ISO completo).
    Una fecha sin hora cubre el día completo.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str) and len(value) == 10:
        try:
            day = datetime.strptime(value, '%Y-%m-%d').replace(tzinfo=timezone.utc)
        except ValueError:
            return None
        return end_of_day(day) if end else start_of_day(day)
    return parse_iso(value)
