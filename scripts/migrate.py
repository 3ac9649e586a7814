#!/usr/bin/env python
"""
Wrapper de Alembic para el esquema destino del sync (sync_state, sync_runs,
customers, invoices, charges).

Uso:
    python scripts/migrate.py upgrade          # Aplicar migraciones pendientes (default: head)
    python scripts/migrate.py downgrade        # Revertir ultima migracion
    python scripts/migrate.py downgrade base   # Borrar todas las tablas del sync
    python scripts/migrate.py revision "desc"  # Nueva migracion con autogenerate
    python scripts/migrate.py current          # Ver version actual
    python scripts/migrate.py history          # Ver historial

La conexion sale de las mismas variables que usa billing-sync
(DATABASE_URL o PGHOST/PGPORT/PGUSER/PGPASSWORD/PGDATABASE/PGSSLMODE).
"""
import subprocess
import sys
from pathlib import Path

from loguru import logger


# Directorio raiz del proyecto (donde vive alembic.ini)
ROOT_DIR = Path(__file__).resolve().parent.parent

DEFAULT_TARGETS = {
    "upgrade": "head",
    "downgrade": "-1",
}


def run_alembic(args: list) -> int:
    """Ejecuta alembic en el directorio del proyecto y retorna su codigo de salida."""
    cmd = ["alembic"] + args
    logger.info(f"Ejecutando: {' '.join(cmd)}")
    result = subprocess.run(cmd, cwd=ROOT_DIR)
    return result.returncode


def build_alembic_args(argv: list) -> list:
    """
    Traduce los argumentos del wrapper a argumentos de alembic.

    Raises:
        ValueError: si el comando no existe o le falta un argumento
    """
    if not argv:
        raise ValueError("Falta comando")

    command = argv[0].lower()
    rest = argv[1:]

    if command in DEFAULT_TARGETS:
        return [command, rest[0] if rest else DEFAULT_TARGETS[command]]
    if command == "revision":
        if not rest:
            raise ValueError("Falta mensaje para la revision")
        return ["revision", "-m", rest[0], "--autogenerate"]
    if command == "current":
        return ["current"]
    if command == "history":
        return ["history", "--verbose"]
    raise ValueError(f"Comando desconocido: {command}")


def main() -> int:
    if len(sys.argv) > 1 and sys.argv[1] in ("help", "-h", "--help"):
        print(__doc__)
        return 0

    try:
        args = build_alembic_args(sys.argv[1:])
    except ValueError as e:
        logger.error(str(e))
        print(__doc__)
        return 1

    return run_alembic(args)


if __name__ == "__main__":
    sys.exit(main())
