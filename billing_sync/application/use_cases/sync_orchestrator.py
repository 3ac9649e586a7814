"""
Orquestador de una corrida incremental por categoría.

Diseño (resumen):
- Carga el watermark W de la categoría (0 si nunca corrió: backfill completo)
- Recorre la colección primaria; escribe solo registros con created > W y
  reconcilia el secundario vinculado si existe
- Barre la colección secundaria (huérfanos) con la misma ventana
- Persiste max(W, newest_seen) solo si ambos barridos terminaron

Estrategia de fallos:
- Error por registro (RecordSyncError): se registra, se omite el registro y sigue.
- Error de paginación o conexión caída: se aborta la corrida sin tocar el
  watermark (PassAbortedError). Lo ya escrito queda confirmado y la próxima
  corrida re-cubre la misma ventana; el UPSERT idempotente lo hace seguro.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import psycopg
from loguru import logger

from billing_sync.application.dto.sync_dto import PassReportDTO, RecordFailureDTO
from billing_sync.application.services.reconciliation import ReconcileStatus, ReconciliationEngine
from billing_sync.application.services.record_normalizer import normalize, record_created
from billing_sync.application.use_cases.sync_categories import SyncCategory
from billing_sync.infrastructure.database.checkpoint_store import CheckpointStore
from billing_sync.infrastructure.database.connection import PostgresDatabase, stable_lock_key
from billing_sync.infrastructure.database.upsert_writer import UpsertOutcome, UpsertWriter
from billing_sync.infrastructure.external.ledger.ledger_client import LedgerClient
from billing_sync.shared.exceptions.sync import (
    LinkedFetchError,
    PassAbortedError,
    RecordNormalizationError,
    RecordSyncError,
)


LOCK_NAMESPACE = "billing_sync"


@dataclass(frozen=True)
class PassOptions:
    """
    Variantes de una misma corrida.

    - windowed=False: full resync (ventana desde 0); el watermark igual se
      escribe de forma monótona
    - include_orphan_sweep=False: solo colección primaria + vinculados
    """

    windowed: bool = True
    include_orphan_sweep: bool = True

    @property
    def mode(self) -> str:
        mode = "incremental" if self.windowed else "full_resync"
        if not self.include_orphan_sweep:
            mode += "_no_orphans"
        return mode


class SyncOrchestrator:
    """
    Orquestador del pipeline. Una instancia sirve para varias categorías;
    el estado de cada corrida vive en el PassReportDTO y en el motor de
    reconciliación que se crea por corrida.
    """

    def __init__(
        self,
        *,
        db: PostgresDatabase,
        checkpoints: CheckpointStore,
        writer: UpsertWriter,
        reader: LedgerClient,
        page_size: int = 100,
    ) -> None:
        self._db = db
        self._checkpoints = checkpoints
        self._writer = writer
        self._reader = reader
        self._page_size = page_size

    def run_pass(self, category: SyncCategory, options: PassOptions = PassOptions()) -> PassReportDTO:
        """
        Ejecuta una corrida completa para la categoría.

        Raises:
            PassAbortedError: si un error fatal interrumpió la corrida
                (el watermark quedó sin cambios)
        """
        report = PassReportDTO(category=category.name, mode=options.mode)
        log = logger.bind(category=category.name)

        try:
            return self._run_connected(category, options, report, log)
        except psycopg.Error as e:
            # Store caído antes de empezar a escribir (conexión, lock o watermark).
            report.status = "failed"
            report.error = str(e)
            log.bind(event="pass_failed", error_type=type(e).__name__).error(
                f"Sync '{category.name}' abortado antes de procesar registros: {e}"
            )
            raise PassAbortedError(category.name, e) from e

    def _run_connected(
        self,
        category: SyncCategory,
        options: PassOptions,
        report: PassReportDTO,
        log,
    ) -> PassReportDTO:
        with self._db.connect() as conn:
            if not self._db.try_advisory_lock(conn, stable_lock_key(LOCK_NAMESPACE, category.name)):
                report.status = "skipped"
                log.bind(event="pass_skipped").warning(
                    f"Sync '{category.name}' ya está corriendo (advisory lock ocupado). Saliendo."
                )
                return report

            watermark = self._checkpoints.get_watermark(conn, category.name)
            report.watermark_before = watermark
            floor = watermark if options.windowed else 0
            run_id: Optional[int] = None

            log.bind(event="pass_started", mode=options.mode).info(
                f"Sync '{category.name}' ({options.mode}): created > {floor}"
            )

            try:
                run_id = self._checkpoints.record_run_started(
                    conn, category=category.name, mode=options.mode, watermark_before=watermark
                )
                engine = None
                if category.secondary:
                    engine = ReconciliationEngine(reader=self._reader, writer=self._writer, link=category.secondary)

                newest_seen = self._sweep_primary(conn, category, floor, engine, report)
                if engine and options.include_orphan_sweep:
                    newest_seen = max(newest_seen, self._sweep_secondary(conn, category, floor, engine, report))

                new_watermark = max(watermark, newest_seen)
                self._checkpoints.set_watermark(conn, category.name, new_watermark)
            except Exception as e:
                report.status = "failed"
                report.error = str(e)
                log.bind(event="pass_failed", error_type=type(e).__name__).error(
                    f"Sync '{category.name}' abortado; watermark se mantiene en {watermark}: {e}"
                )
                self._finish_run(conn, run_id, report)
                raise PassAbortedError(category.name, e) from e

            report.watermark_after = new_watermark
            report.status = "success"
            self._finish_run(conn, run_id, report)

        log.bind(
            event="pass_completed",
            records_written=report.records_written,
            records_failed=report.records_failed,
            watermark=report.watermark_after,
        ).success(f"Sync '{category.name}' completado; watermark {watermark} -> {report.watermark_after}")
        return report

    def _window_filters(self, floor: int, base: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        filters = dict(base or {})
        if floor > 0:
            # Optimización server-side; la ventana igual se aplica en cliente.
            filters["created[gt]"] = floor
        return filters

    def _sweep_primary(
        self,
        conn: psycopg.Connection,
        category: SyncCategory,
        floor: int,
        engine: Optional[ReconciliationEngine],
        report: PassReportDTO,
    ) -> int:
        entity = category.primary_policy.entity
        newest_seen = 0

        for record in self._reader.iter_collection(
            category.primary_collection,
            page_size=self._page_size,
            filters=self._window_filters(floor, category.list_filters),
        ):
            report.primary_seen += 1
            try:
                created = record_created(record, entity)
            except RecordSyncError as e:
                self._record_failure(report, e)
                continue

            if created <= floor:
                report.primary_outside_window += 1
                continue

            newest_seen = max(newest_seen, created)
            self._process_primary(conn, category, record, engine, report)

        return newest_seen

    def _process_primary(
        self,
        conn: psycopg.Connection,
        category: SyncCategory,
        record: Dict[str, Any],
        engine: Optional[ReconciliationEngine],
        report: PassReportDTO,
    ) -> None:
        policy = category.primary_policy
        try:
            row = normalize(category.primary_normalizer, record, entity=policy.entity)
            outcome = self._writer.upsert(conn, policy, row.as_row())
        except RecordSyncError as e:
            self._record_failure(report, e)
        else:
            if outcome is UpsertOutcome.INSERTED:
                report.primary_inserted += 1
            else:
                report.primary_updated += 1

        # El vínculo se procesa aunque el primario haya fallado: es otro registro.
        if engine is None or category.link_of is None:
            return
        secondary_id = category.link_of(record)
        primary_id = record.get("id")
        if not secondary_id or not primary_id:
            return

        try:
            engine.reconcile_linked(conn, secondary_id, primary_id)
        except RecordSyncError as e:
            self._record_failure(report, e)
        else:
            report.linked_written += 1

    def _sweep_secondary(
        self,
        conn: psycopg.Connection,
        category: SyncCategory,
        floor: int,
        engine: ReconciliationEngine,
        report: PassReportDTO,
    ) -> int:
        secondary = category.secondary
        entity = secondary.policy.entity
        newest_seen = 0

        logger.bind(category=category.name, event="orphan_sweep_started").info(
            f"Barrido de huérfanos en '{secondary.collection}'..."
        )

        for record in self._reader.iter_collection(
            secondary.collection,
            page_size=self._page_size,
            filters=self._window_filters(floor),
        ):
            report.secondary_seen += 1
            try:
                created = record_created(record, entity)
            except RecordSyncError as e:
                self._record_failure(report, e, stage="orphan_sweep")
                continue

            if created <= floor:
                report.secondary_outside_window += 1
                continue

            newest_seen = max(newest_seen, created)
            try:
                status = engine.reconcile_orphan_candidate(conn, record)
            except RecordSyncError as e:
                self._record_failure(report, e, stage="orphan_sweep")
                continue

            if status is ReconcileStatus.ALREADY_PRESENT:
                report.secondary_already_present += 1
            elif status is ReconcileStatus.LATE_LINKED:
                report.late_linked_inserted += 1
            else:
                report.orphans_inserted += 1

        return newest_seen

    def _record_failure(self, report: PassReportDTO, error: RecordSyncError, stage: Optional[str] = None) -> None:
        if stage is None:
            if isinstance(error, RecordNormalizationError):
                stage = "normalize"
            elif isinstance(error, LinkedFetchError):
                stage = "linked_fetch"
            else:
                stage = "upsert"

        entity_id = str(error.entity_id) if error.entity_id is not None else None
        report.failures.append(
            RecordFailureDTO(entity=error.entity, entity_id=entity_id, stage=stage, error=error.message)
        )
        logger.bind(
            event="record_failed",
            category=report.category,
            entity=error.entity,
            entity_id=entity_id,
            stage=stage,
        ).error(f"Registro omitido ({stage}): {error.message}")

    def _finish_run(self, conn: psycopg.Connection, run_id: Optional[int], report: PassReportDTO) -> None:
        """
        Cierra la fila de sync_runs. Es solo diagnóstico: si falla, se loguea
        y no cambia el resultado de la corrida.
        """
        if run_id is None:
            return
        try:
            self._checkpoints.record_run_finished(
                conn,
                run_id=run_id,
                status=report.status,
                watermark_after=report.watermark_after,
                records_written=report.records_written,
                records_failed=report.records_failed,
                error=(report.error or "")[:2000] or None,
            )
        except psycopg.Error as e:
            logger.bind(category=report.category, event="run_log_failed").warning(
                f"No se pudo registrar el fin de la corrida {run_id}: {e}"
            )
