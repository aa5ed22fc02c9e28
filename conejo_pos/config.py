# ==============================================================================
# CONFIGURACIÓN - Variables de entorno
# ==============================================================================
# Se construye UNA vez al arrancar (Settings.from_env()) y se pasa
# explícitamente al AppContainer. No hay singleton global.
#
# Variables reconocidas:
#   DATABASE_URL             → si existe, backend relacional (SQLAlchemy)
#   DATA_PATH                → carpeta de los JSON (default ./data)
#   STORAGE_TIMEOUT          → segundos máximos de espera por colección
#   COWORKING_HOURLY_RATE    → tarifa por hora en ventas de coworking
#   SESSION_HOURLY_RATE      → tarifa por hora por defecto de sesiones
#   DAY_RATE                 → tarifa plana por día
#   DAY_RATE_THRESHOLD_HOURS → horas a partir de las cuales aplica DAY_RATE
#   ENV / LOG_LEVEL          → entorno y nivel de logs
#   BACKUP_MAX               → cantidad de backups ZIP a conservar
# ==============================================================================

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Valores por defecto del negocio
COWORKING_HOURLY_RATE = 58.0
SESSION_DEFAULT_HOURLY_RATE = 72.0
DAY_RATE = 225.0
DAY_RATE_THRESHOLD_HOURS = 4.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Variable de entorno inválida {name}={raw!r}")


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass(frozen=True)
class Settings:
    """
    Configuración inmutable del proceso.

    Uso:
        settings = Settings.from_env()
        container = AppContainer(settings)
    """
    database_url: Optional[str] = None
    data_path: str = './data'
    storage_timeout: float = 10.0
    coworking_hourly_rate: float = COWORKING_HOURLY_RATE
    session_hourly_rate: float = SESSION_DEFAULT_HOURLY_RATE
    day_rate: float = DAY_RATE
    day_rate_threshold_hours: float = DAY_RATE_THRESHOLD_HOURS
    env: str = 'dev'
    log_level: Optional[str] = None
    backup_max: int = 7

    @property
    def use_relational(self) -> bool:
        """True si se debe usar el backend SQL."""
        return bool(self.database_url)

    @property
    def is_production(self) -> bool:
        return self.env in ('prod', 'production')

    @classmethod
    def from_env(cls, dotenv: bool = True) -> 'Settings':
        """
        Construye la configuración desde el entorno (y .env si existe).

        Raises:
            RuntimeError: Si una variable numérica no se puede convertir
        """
        if dotenv:
            load_dotenv()

        return cls(
            database_url=(os.getenv('DATABASE_URL') or '').strip() or None,
            data_path=os.getenv('DATA_PATH') or './data',
            storage_timeout=_env_float('STORAGE_TIMEOUT', 10.0),
            coworking_hourly_rate=_env_float('COWORKING_HOURLY_RATE', COWORKING_HOURLY_RATE),
            session_hourly_rate=_env_float('SESSION_HOURLY_RATE', SESSION_DEFAULT_HOURLY_RATE),
            day_rate=_env_float('DAY_RATE', DAY_RATE),
            day_rate_threshold_hours=_env_float('DAY_RATE_THRESHOLD_HOURS', DAY_RATE_THRESHOLD_HOURS),
            env=(os.getenv('ENV') or 'dev').strip().lower(),
            log_level=(os.getenv('LOG_LEVEL') or '').strip().upper() or None,
            backup_max=_env_int('BACKUP_MAX', 7),
        )
