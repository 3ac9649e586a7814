"""
Configuracion de logging (loguru).

Los eventos del sync se emiten con `logger.bind(event=..., category=...,
entity=..., entity_id=...)`; con LOG_JSON=true el sink de stderr serializa
cada registro a JSON para que cualquier backend pueda consumirlo.
"""
import sys

from loguru import logger

from billing_sync.core.config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Reemplaza el sink por defecto de loguru.

    - stderr: nivel LOG_LEVEL (canal de diagnostico visible al operador)
    - LOG_FILE (opcional): archivo con rotacion y retencion
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        serialize=settings.LOG_JSON,
        backtrace=False,
        diagnose=False,
    )

    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            rotation="500 MB",
            retention="10 days",
            level=settings.LOG_LEVEL,
            serialize=settings.LOG_JSON,
        )
