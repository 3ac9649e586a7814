"""
Repositorio Postgres (psycopg) para:
- tabla de watermark por categoría (sync_state)
- historial de corridas (sync_runs), solo diagnóstico

El watermark es el mayor `created` (epoch en segundos) procesado por una
corrida completa. Solo el orquestador lo escribe, y solo al terminar.
"""

from __future__ import annotations

from typing import Optional

import psycopg


class CheckpointStore:
    def get_watermark(self, conn: psycopg.Connection, category: str) -> int:
        """
        Retorna el watermark persistido, o 0 si la categoría nunca completó
        una corrida ("sincronizar desde el inicio").
        """
        with conn.cursor() as cur:
            cur.execute(
                "SELECT watermark FROM sync_state WHERE category = %s",
                (category,),
            )
            row = cur.fetchone()
        if not row or row.get("watermark") is None:
            return 0
        return int(row["watermark"])

    def set_watermark(self, conn: psycopg.Connection, category: str, value: int) -> None:
        """
        UPSERT atómico del watermark.

        GREATEST garantiza que nunca retrocede, incluso si se llama con un
        valor menor (p.ej. un full resync sobre una fuente más chica).
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO sync_state (category, watermark, updated_at)
                VALUES (%s, %s, now())
                ON CONFLICT (category) DO UPDATE
                SET watermark = GREATEST(sync_state.watermark, EXCLUDED.watermark),
                    updated_at = now()
                """,
                (category, int(value)),
            )

    def record_run_started(
        self,
        conn: psycopg.Connection,
        *,
        category: str,
        mode: str,
        watermark_before: int,
    ) -> int:
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO sync_runs (category, mode, started_at, status, watermark_before)
                VALUES (%s, %s, now(), 'running', %s)
                RETURNING id
                """,
                (category, mode, watermark_before),
            )
            row = cur.fetchone()
        return int(row["id"])

    def record_run_finished(
        self,
        conn: psycopg.Connection,
        *,
        run_id: int,
        status: str,
        watermark_after: Optional[int],
        records_written: int,
        records_failed: int,
        error: Optional[str] = None,
    ) -> None:
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE sync_runs
                SET finished_at = now(),
                    status = %s,
                    watermark_after = %s,
                    records_written = %s,
                    records_failed = %s,
                    error = %s
                WHERE id = %s
                """,
                (status, watermark_after, records_written, records_failed, error, run_id),
            )
