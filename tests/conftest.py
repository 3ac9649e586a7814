"""
Configuración de fixtures para pytest.

Fakes en memoria de los colaboradores del orquestador (lector remoto, store
de checkpoints, writer y base de datos). El writer en memoria aplica las
mismas MergePolicy que el UPSERT real, así que las propiedades de
idempotencia y convergencia se verifican sin PostgreSQL.
"""
from __future__ import annotations

import copy
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import pytest

from billing_sync.application.use_cases.sync_orchestrator import SyncOrchestrator
from billing_sync.infrastructure.database.merge_policies import MergePolicy, MergeRule
from billing_sync.infrastructure.database.upsert_writer import UpsertOutcome
from billing_sync.shared.exceptions.sync import RecordWriteError, RemoteApiError


class FakeReader:
    """Lector remoto con páginas predefinidas por colección."""

    def __init__(self) -> None:
        self.pages: Dict[str, List[List[Dict[str, Any]]]] = {}
        self.remote: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.page_failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self.retrieved: List[tuple] = []

    def set_pages(self, collection: str, pages: List[List[Dict[str, Any]]]) -> None:
        self.pages[collection] = pages
        for page in pages:
            for record in page:
                self.add_remote(collection, record)

    def add_remote(self, collection: str, record: Dict[str, Any]) -> None:
        self.remote.setdefault(collection, {})[record["id"]] = record

    def fail_on_page(self, collection: str, page_number: int, error: Optional[Exception] = None) -> None:
        self.page_failures[(collection, page_number)] = error or RemoteApiError("ledger 500", status_code=500)

    def iter_collection(self, collection: str, *, page_size: int = 100, filters: Optional[dict] = None):
        self.calls.append((collection, dict(filters or {})))
        for page_number, page in enumerate(self.pages.get(collection, []), start=1):
            failure = self.page_failures.get((collection, page_number))
            if failure:
                raise failure
            yield from (copy.deepcopy(r) for r in page)

    def retrieve(self, collection: str, record_id: str) -> Dict[str, Any]:
        self.retrieved.append((collection, record_id))
        record = self.remote.get(collection, {}).get(record_id)
        if record is None:
            raise RemoteApiError(f"No such {collection}: {record_id}", status_code=404)
        return copy.deepcopy(record)


class InMemoryCheckpointStore:
    def __init__(self) -> None:
        self.state: Dict[str, int] = {}
        self.runs: List[Dict[str, Any]] = []

    def get_watermark(self, conn, category: str) -> int:
        return self.state.get(category, 0)

    def set_watermark(self, conn, category: str, value: int) -> None:
        self.state[category] = max(self.state.get(category, value), value)

    def record_run_started(self, conn, *, category: str, mode: str, watermark_before: int) -> int:
        self.runs.append(
            {"category": category, "mode": mode, "status": "running", "watermark_before": watermark_before}
        )
        return len(self.runs)

    def record_run_finished(self, conn, *, run_id: int, **fields: Any) -> None:
        self.runs[run_id - 1].update(fields)


class InMemoryWriter:
    """Aplica OVERWRITE / FILL_IF_ABSENT igual que el SQL generado."""

    def __init__(self) -> None:
        self.tables: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.fail_ids: Dict[str, Exception] = {}
        self.upserts: List[tuple] = []

    def upsert(self, conn, policy: MergePolicy, row: Dict[str, Any]) -> UpsertOutcome:
        record_id = row.get(policy.key)
        if not record_id:
            raise RecordWriteError(policy.entity, record_id, "falta PK")
        if record_id in self.fail_ids:
            raise self.fail_ids[record_id]

        self.upserts.append((policy.table, record_id))
        table = self.tables.setdefault(policy.table, {})
        existing = table.get(record_id)
        if existing is None:
            table[record_id] = {c: row[c] for c in policy.columns}
            return UpsertOutcome.INSERTED

        for column, rule in policy.rules.items():
            if rule is MergeRule.OVERWRITE or existing[column] is None:
                existing[column] = row[column]
        return UpsertOutcome.UPDATED

    def exists(self, conn, policy: MergePolicy, record_id: str) -> bool:
        return record_id in self.tables.get(policy.table, {})

    def rows(self, table: str) -> Dict[str, Dict[str, Any]]:
        return self.tables.get(table, {})


class FakeDatabase:
    def __init__(self) -> None:
        self.lock_available = True
        self.lock_keys: List[int] = []
        self.connections = 0

    def connect(self):
        self.connections += 1
        return nullcontext(object())

    def try_advisory_lock(self, conn, lock_key: int) -> bool:
        self.lock_keys.append(lock_key)
        return self.lock_available


@pytest.fixture
def reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def checkpoints() -> InMemoryCheckpointStore:
    return InMemoryCheckpointStore()


@pytest.fixture
def writer() -> InMemoryWriter:
    return InMemoryWriter()


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def orchestrator(reader, checkpoints, writer, database) -> SyncOrchestrator:
    return SyncOrchestrator(db=database, checkpoints=checkpoints, writer=writer, reader=reader, page_size=2)
