"""
Reconciliación de registros secundarios (cargos) con primarios (facturas).

Dos rutas de descubrimiento convergen en la misma fila:
- Vinculada: durante el barrido de facturas, el cargo referenciado se trae por
  id y se escribe con primary_ref = id de la factura.
- Candidato huérfano: durante el barrido propio de cargos (después del de
  facturas), solo se insertan cargos que todavía no existen localmente.

La ruta vinculada tiene precedencia: el barrido de huérfanos nunca reescribe
un cargo ya presente, así que no puede perder su vínculo. Ambas rutas usan la
misma MergePolicy del UpsertWriter.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict

import psycopg
from loguru import logger

from billing_sync.application.services.record_normalizer import normalize
from billing_sync.infrastructure.database.merge_policies import MergePolicy
from billing_sync.infrastructure.database.upsert_writer import UpsertWriter
from billing_sync.infrastructure.external.ledger.ledger_client import LedgerClient
from billing_sync.shared.exceptions.sync import LinkedFetchError, RemoteApiError


class ReconcileStatus(str, Enum):
    LINKED = "linked"
    ORPHAN_INSERTED = "orphan_inserted"
    LATE_LINKED = "late_linked"
    ALREADY_PRESENT = "already_present"


@dataclass(frozen=True)
class SecondaryLink:
    """
    Cómo se relaciona la colección secundaria con la primaria.

    - collection: colección remota del secundario (p.ej. "charges")
    - policy: política de merge de la tabla secundaria
    - normalizer: fn(record, primary_ref=...) -> fila; sin primary_ref usa la
      referencia que declara el propio registro
    """

    collection: str
    policy: MergePolicy
    normalizer: Callable[..., Any]


class ReconciliationEngine:
    """
    Estado por corrida: recuerda los ids vinculados en esta corrida para no
    consultarlos de nuevo durante el barrido de huérfanos.
    """

    def __init__(
        self,
        *,
        reader: LedgerClient,
        writer: UpsertWriter,
        link: SecondaryLink,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._link = link
        self._linked_ids: set[str] = set()

    def reconcile_linked(self, conn: psycopg.Connection, secondary_id: str, primary_id: str) -> ReconcileStatus:
        """
        Ruta vinculada: trae el secundario por id y lo escribe vinculado.

        Raises:
            LinkedFetchError: si no se pudo traer (error por registro)
            RecordSyncError: si no se pudo normalizar o escribir (error por registro)
        """
        entity = self._link.policy.entity
        try:
            record = self._reader.retrieve(self._link.collection, secondary_id)
        except RemoteApiError as e:
            raise LinkedFetchError(entity, secondary_id, f"referenciado por {primary_id}: {e.message}") from e

        row = normalize(self._link.normalizer, record, entity=entity, primary_ref=primary_id)
        self._writer.upsert(conn, self._link.policy, row.as_row())
        self._linked_ids.add(row.id)

        logger.bind(event="secondary_linked", entity=entity, entity_id=row.id).debug(
            f"{entity} {row.id} vinculado a {primary_id}"
        )
        return ReconcileStatus.LINKED

    def reconcile_orphan_candidate(self, conn: psycopg.Connection, record: Dict[str, Any]) -> ReconcileStatus:
        """
        Ruta de candidato huérfano: inserta solo si el id no existe localmente.

        Si el registro remoto declara un primario que no se vio en el barrido
        primario (carrera), se inserta con esa referencia (vinculado tardío).
        """
        entity = self._link.policy.entity
        record_id = record.get("id")

        if record_id and (
            record_id in self._linked_ids
            or self._writer.exists(conn, self._link.policy, record_id)
        ):
            return ReconcileStatus.ALREADY_PRESENT

        row = normalize(self._link.normalizer, record, entity=entity)
        self._writer.upsert(conn, self._link.policy, row.as_row())

        if row.primary_ref:
            logger.bind(event="secondary_late_linked", entity=entity, entity_id=row.id).info(
                f"{entity} {row.id} insertado con referencia tardía a {row.primary_ref}"
            )
            return ReconcileStatus.LATE_LINKED

        logger.bind(event="secondary_orphan", entity=entity, entity_id=row.id).debug(
            f"{entity} {row.id} insertado como huérfano"
        )
        return ReconcileStatus.ORPHAN_INSERTED
