"""
Excepciones del motor de sincronización.

Taxonomía:
- Startup-fatal: SyncConfigError, StoreUnavailableError (antes de cualquier corrida).
- Pass-fatal: RemoteApiError durante la paginación, PassAbortedError (la corrida
  se aborta y el watermark no avanza).
- Por registro: RecordSyncError y subclases (se loguea, se omite el registro y
  la corrida continúa).
"""
from typing import Any, Optional

from billing_sync.shared.exceptions.base import AppException


EXIT_PASS_FAILED = 1
EXIT_STARTUP_FAILED = 2


class SyncConfigError(AppException):
    """Error de configuración del pipeline (variables faltantes o inválidas)."""

    def __init__(self, message: str, missing: Optional[list[str]] = None):
        super().__init__(
            message=message,
            exit_code=EXIT_STARTUP_FAILED,
            error_code="SYNC_CONFIG_ERROR",
            details={"missing": missing} if missing else None,
        )


class StoreUnavailableError(AppException):
    """No se pudo conectar a PostgreSQL al arrancar."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            exit_code=EXIT_STARTUP_FAILED,
            error_code="STORE_UNAVAILABLE",
        )


class RemoteApiError(AppException):
    """Error de integración con la API del ledger."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(
            message=message,
            exit_code=EXIT_PASS_FAILED,
            error_code="REMOTE_API_ERROR",
            details={"status_code": status_code} if status_code else None,
        )
        self.status_code = status_code


class PassAbortedError(AppException):
    """La corrida de una categoría se abortó antes de persistir el watermark."""

    def __init__(self, category: str, cause: BaseException):
        super().__init__(
            message=f"Corrida '{category}' abortada: {cause}",
            exit_code=EXIT_PASS_FAILED,
            error_code="PASS_ABORTED",
            details={"category": category, "cause": type(cause).__name__},
        )
        self.category = category
        self.cause = cause


class RecordSyncError(AppException):
    """
    Error transitorio de un registro individual.
    No aborta la corrida: el orquestador lo registra y continúa.
    """

    def __init__(self, entity: str, entity_id: Any, message: str, error_code: str = "RECORD_ERROR"):
        super().__init__(
            message=f"{entity} {entity_id}: {message}",
            exit_code=EXIT_PASS_FAILED,
            error_code=error_code,
            details={"entity": entity, "id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class RecordNormalizationError(RecordSyncError):
    """El registro remoto no tiene la forma mínima esperada (id, created)."""

    def __init__(self, entity: str, entity_id: Any, message: str):
        super().__init__(entity, entity_id, message, error_code="RECORD_MALFORMED")


class RecordWriteError(RecordSyncError):
    """Falló el UPSERT de un registro (constraint, tipo, etc.)."""

    def __init__(self, entity: str, entity_id: Any, message: str):
        super().__init__(entity, entity_id, message, error_code="RECORD_WRITE_FAILED")


class LinkedFetchError(RecordSyncError):
    """No se pudo obtener un registro secundario referenciado por un primario."""

    def __init__(self, entity: str, entity_id: Any, message: str):
        super().__init__(entity, entity_id, message, error_code="LINKED_FETCH_FAILED")
