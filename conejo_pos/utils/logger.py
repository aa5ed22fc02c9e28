import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] - %(message)s"
# Formato más conciso para producción
LOG_FORMAT_PROD = "%(asctime)s [%(levelname)s] - %(message)s"


def _get_environment() -> str:
    """Obtiene el entorno actual de ejecución."""
    env = (os.getenv("ENV") or "dev").strip().lower()
    if env in {"prod", "production"}:
        return "prod"
    return "dev"


def _file_logging_enabled() -> bool:
    return (os.getenv("LOG_TO_FILE") or "1").strip().lower() not in {"0", "false", "no"}


def get_logger(name: str) -> logging.Logger:
    """
    Obtiene un logger configurado según el entorno.

    En producción:
    - Nivel WARNING (menos verboso)
    - No incluye nombre del módulo en el formato

    En desarrollo:
    - Nivel INFO
    - Incluye nombre del módulo para debugging

    LOG_LEVEL fuerza el nivel; LOG_TO_FILE=0 desactiva logs/app.log.

    Parámetros:
        name: Nombre del módulo/componente

    Retorna:
        Logger configurado
    """
    logger = logging.getLogger(name)
    if getattr(logger, "_configured", False):
        return logger

    is_prod = _get_environment() == "prod"
    formatter = logging.Formatter(LOG_FORMAT_PROD if is_prod else LOG_FORMAT)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if _file_logging_enabled():
        log_dir = Path(os.getenv("LOG_DIR") or "logs")
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / "app.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    level_name = (os.getenv("LOG_LEVEL") or "").strip().upper()
    default_level = logging.WARNING if is_prod else logging.INFO
    logger.setLevel(getattr(logging, level_name, default_level) if level_name else default_level)

    logger.propagate = False
    logger._configured = True
    return logger
