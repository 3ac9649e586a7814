"""
Handle de conexión a PostgreSQL para una corrida.

La conexión se abre una vez por corrida (`with db.connect() as conn:`) y se
libera en todas las salidas. Trabaja en autocommit: cada UPSERT y el
watermark se confirman en su propio statement.
"""

from __future__ import annotations

import psycopg
from loguru import logger
from psycopg.rows import dict_row

from billing_sync.shared.exceptions.sync import StoreUnavailableError


def stable_lock_key(namespace: str, category: str) -> int:
    """
    Genera un lock key reproducible para pg_advisory_lock.
    """
    # hash() no es estable entre procesos; sumatoria simple de bytes (no es crypto).
    raw = (namespace + ":" + category).encode("utf-8")
    return int(sum(raw) % (2**31 - 1))


class PostgresDatabase:
    def __init__(self, conninfo: str) -> None:
        self._conninfo = conninfo

    def connect(self) -> psycopg.Connection:
        """
        Abre conexión en autocommit con filas como dict. El caller la cierra
        usándola como context manager.
        """
        return psycopg.connect(self._conninfo, row_factory=dict_row, autocommit=True)

    def ping(self) -> None:
        """
        Verifica que el store sea alcanzable al arrancar.

        Raises:
            StoreUnavailableError: si no se puede conectar o ejecutar SELECT 1
        """
        try:
            with self.connect() as conn:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1 AS ok")
                    cur.fetchone()
        except psycopg.Error as e:
            raise StoreUnavailableError(
                f"No se pudo conectar a PostgreSQL: {e}\n"
                f"Sugerencia: verifica PGHOST/PGPORT (o DATABASE_URL) y que el servidor acepte TLS según PGSSLMODE."
            ) from e
        logger.debug("PostgreSQL alcanzable")

    def try_advisory_lock(self, conn: psycopg.Connection, lock_key: int) -> bool:
        """
        Evita corridas simultáneas de la misma categoría.
        El lock es de sesión: se libera al cerrar la conexión.
        """
        with conn.cursor() as cur:
            cur.execute("SELECT pg_try_advisory_lock(%s) AS locked", (lock_key,))
            row = cur.fetchone()
            return bool(row and row.get("locked"))
