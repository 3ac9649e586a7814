"""
DTOs del resultado de una corrida de sincronización.

El PassReport se va completando durante la corrida y al final se emite como
resumen legible (summary) y como evento estructurado (model_dump).
"""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


PassStatus = Literal["running", "success", "failed", "skipped"]


class RecordFailureDTO(BaseModel):
    """Fallo de un registro individual (omitido, la corrida continuó)."""

    entity: str
    entity_id: Optional[str] = None
    stage: str = Field(..., description="normalize | upsert | linked_fetch | orphan_sweep")
    error: str


class PassReportDTO(BaseModel):
    """Contadores y resultado de una corrida para una categoría."""

    category: str
    mode: str
    status: PassStatus = "running"
    watermark_before: int = 0
    watermark_after: Optional[int] = None

    primary_seen: int = 0
    primary_outside_window: int = 0
    primary_inserted: int = 0
    primary_updated: int = 0

    linked_written: int = 0
    secondary_seen: int = 0
    secondary_outside_window: int = 0
    orphans_inserted: int = 0
    late_linked_inserted: int = 0
    secondary_already_present: int = 0

    failures: List[RecordFailureDTO] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def records_written(self) -> int:
        return (
            self.primary_inserted
            + self.primary_updated
            + self.linked_written
            + self.orphans_inserted
            + self.late_linked_inserted
        )

    @property
    def records_failed(self) -> int:
        return len(self.failures)

    def summary(self) -> str:
        """Resumen legible para el operador."""
        text = (
            f"[{self.category}] {self.status}: "
            f"{self.primary_seen} procesados "
            f"({self.primary_inserted} insertados, {self.primary_updated} actualizados, "
            f"{self.primary_outside_window} fuera de ventana)"
        )
        if self.linked_written or self.secondary_seen:
            text += (
                f", {self.linked_written} vinculados, "
                f"{self.orphans_inserted} huérfanos insertados, "
                f"{self.late_linked_inserted} vinculados tardíos, "
                f"{self.secondary_already_present} ya presentes"
            )
        text += f", {self.records_failed} fallidos; watermark {self.watermark_before} -> {self.watermark_after}"
        return text
