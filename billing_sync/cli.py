"""
CLI: ledger (Stripe) -> Postgres (sync incremental de una vía).

Uso recomendado:
  - Ejecutar como job (cron/systemd timer).

Variables de entorno requeridas:
  - STRIPE_API_KEY
  - PGHOST (+ PGUSER/PGPASSWORD/PGDATABASE) o DATABASE_URL

Ejecución:
  billing-sync
  billing-sync --category invoices
  billing-sync --full-resync --skip-orphan-sweep
  python -m billing_sync

Códigos de salida:
  0  todas las categorías OK (o saltadas por lock ocupado)
  1  al menos una categoría falló
  2  error de arranque (configuración o PostgreSQL inalcanzable)
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger

from billing_sync.application.use_cases.sync_categories import build_categories
from billing_sync.application.use_cases.sync_orchestrator import PassOptions, SyncOrchestrator
from billing_sync.core.config import Settings, load_settings
from billing_sync.core.logging import configure_logging
from billing_sync.infrastructure.database.checkpoint_store import CheckpointStore
from billing_sync.infrastructure.database.connection import PostgresDatabase
from billing_sync.infrastructure.database.upsert_writer import UpsertWriter
from billing_sync.infrastructure.external.ledger.ledger_client import LedgerClient, LedgerCredentials
from billing_sync.shared.exceptions.sync import (
    PassAbortedError,
    StoreUnavailableError,
    SyncConfigError,
)


ALL_CATEGORIES = "all"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="billing-sync",
        description="Sincroniza clientes, facturas y cargos del ledger hacia PostgreSQL.",
    )
    parser.add_argument(
        "--category",
        choices=["customers", "invoices", ALL_CATEGORIES],
        default=ALL_CATEGORIES,
        help="Categoría a sincronizar (default: all, en orden customers -> invoices).",
    )
    parser.add_argument(
        "--full-resync",
        action="store_true",
        help="Ignora el watermark al filtrar (desde 0). El watermark sigue siendo monótono.",
    )
    parser.add_argument(
        "--skip-orphan-sweep",
        action="store_true",
        help="No barre la colección de cargos; solo facturas + cargos vinculados.",
    )
    return parser


def build_orchestrator(settings: Settings, db: PostgresDatabase) -> SyncOrchestrator:
    reader = LedgerClient(
        LedgerCredentials(api_key=settings.STRIPE_API_KEY),
        base_url=settings.STRIPE_API_BASE,
        timeout_s=settings.HTTP_TIMEOUT_SECONDS,
        max_retries=settings.HTTP_MAX_RETRIES,
    )
    return SyncOrchestrator(
        db=db,
        checkpoints=CheckpointStore(),
        writer=UpsertWriter(),
        reader=reader,
        page_size=settings.SYNC_PAGE_SIZE,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # .env en el cwd; no pisa variables ya exportadas.
    load_dotenv(Path.cwd() / ".env", override=False)

    try:
        settings = load_settings()
    except SyncConfigError as e:
        logger.error(f"Configuración inválida: {e.message}")
        return e.exit_code

    configure_logging(settings)

    db = PostgresDatabase(settings.effective_conninfo)
    try:
        db.ping()
    except StoreUnavailableError as e:
        logger.error(e.message)
        return e.exit_code

    categories = build_categories(invoice_status_filter=settings.INVOICE_STATUS_FILTER)
    selected = list(categories) if args.category == ALL_CATEGORIES else [args.category]
    options = PassOptions(windowed=not args.full_resync, include_orphan_sweep=not args.skip_orphan_sweep)

    orchestrator = build_orchestrator(settings, db)
    failed: List[str] = []
    exit_code = 0

    logger.info(f"Iniciando sync ledger -> Postgres ({options.mode}): {', '.join(selected)}")
    for name in selected:
        try:
            report = orchestrator.run_pass(categories[name], options)
        except PassAbortedError as e:
            # Una categoría caída no impide correr la siguiente.
            logger.error(f"Sync '{e.category}' falló: {e.cause}")
            failed.append(name)
            exit_code = max(exit_code, e.exit_code)
            continue
        logger.info(report.summary())

    if failed:
        logger.error(f"Sync terminado con errores en: {', '.join(failed)}")
        return exit_code

    logger.info("Sync OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
