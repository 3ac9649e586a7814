"""
UPSERT idempotente de filas normalizadas (psycopg v3).

Cada fila se escribe con un único INSERT ... ON CONFLICT en una conexión en
autocommit, por lo que cada merge queda confirmado de forma independiente:
un fallo posterior en la corrida no deshace lo ya escrito.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import psycopg
from psycopg.types.json import Jsonb

from billing_sync.infrastructure.database.merge_policies import MergePolicy, MergeRule
from billing_sync.shared.exceptions.sync import RecordWriteError


class UpsertOutcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"


def build_upsert_sql(policy: MergePolicy) -> str:
    """
    Genera el INSERT ... ON CONFLICT para la política dada.

    - OVERWRITE:      "col" = EXCLUDED."col"
    - FILL_IF_ABSENT: "col" = COALESCE("tabla"."col", EXCLUDED."col")
    - resto: no se toca (inmutable)
    """
    insert_cols_sql = ", ".join(f'"{c}"' for c in policy.columns)
    placeholders = ", ".join(["%s"] * len(policy.columns))

    assignments = []
    for column, rule in policy.rules.items():
        if rule is MergeRule.OVERWRITE:
            assignments.append(f'"{column}" = EXCLUDED."{column}"')
        else:
            assignments.append(f'"{column}" = COALESCE("{policy.table}"."{column}", EXCLUDED."{column}")')

    if assignments:
        conflict_sql = "DO UPDATE SET " + ", ".join(assignments)
    else:
        # Sin columnas mutables: un no-op que igual devuelve la fila en RETURNING.
        conflict_sql = f'DO UPDATE SET "{policy.key}" = EXCLUDED."{policy.key}"'

    return f"""
        INSERT INTO "{policy.table}" ({insert_cols_sql})
        VALUES ({placeholders})
        ON CONFLICT ("{policy.key}")
        {conflict_sql}
        RETURNING "{policy.key}", (xmax = 0) AS is_insert;
    """


class UpsertWriter:
    """
    Insert-or-merge por PK según la MergePolicy de cada entidad.

    Errores:
    - psycopg.OperationalError (conexión caída): se propaga, es fatal para la corrida.
    - cualquier otro psycopg.Error: RecordWriteError (el caller omite el registro).
    """

    def __init__(self) -> None:
        self._sql_cache: dict[str, str] = {}

    def upsert(self, conn: psycopg.Connection, policy: MergePolicy, row: dict[str, Any]) -> UpsertOutcome:
        record_id = row.get(policy.key)
        if not record_id:
            raise RecordWriteError(policy.entity, record_id, f"falta PK '{policy.key}' en la fila")

        sql = self._sql_for(policy)
        values = tuple(
            Jsonb(row[c]) if c in policy.json_columns and row[c] is not None else row[c]
            for c in policy.columns
        )

        try:
            with conn.cursor() as cur:
                cur.execute(sql, values)
                result = cur.fetchone()
        except psycopg.OperationalError:
            raise
        except psycopg.Error as e:
            raise RecordWriteError(policy.entity, record_id, str(e)) from e

        if result and result.get("is_insert"):
            return UpsertOutcome.INSERTED
        return UpsertOutcome.UPDATED

    def exists(self, conn: psycopg.Connection, policy: MergePolicy, record_id: str) -> bool:
        """Point lookup por PK."""
        with conn.cursor() as cur:
            cur.execute(
                f'SELECT 1 AS found FROM "{policy.table}" WHERE "{policy.key}" = %s',
                (record_id,),
            )
            return cur.fetchone() is not None

    def _sql_for(self, policy: MergePolicy) -> str:
        if policy.table not in self._sql_cache:
            self._sql_cache[policy.table] = build_upsert_sql(policy)
        return self._sql_cache[policy.table]
