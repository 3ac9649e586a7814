"""
Data Transfer Objects (DTOs) para la capa de aplicacion.
"""
from .sync_dto import PassReportDTO, PassStatus, RecordFailureDTO

__all__ = [
    "PassReportDTO",
    "PassStatus",
    "RecordFailureDTO",
]
