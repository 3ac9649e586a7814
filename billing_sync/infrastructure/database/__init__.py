"""
Persistencia en PostgreSQL: watermark, UPSERT de entidades y esquema.
"""
from billing_sync.infrastructure.database.checkpoint_store import CheckpointStore
from billing_sync.infrastructure.database.connection import PostgresDatabase, stable_lock_key
from billing_sync.infrastructure.database.merge_policies import (
    CHARGE_POLICY,
    CUSTOMER_POLICY,
    INVOICE_POLICY,
    MergePolicy,
    MergeRule,
)
from billing_sync.infrastructure.database.upsert_writer import UpsertOutcome, UpsertWriter

__all__ = [
    "CHARGE_POLICY",
    "CUSTOMER_POLICY",
    "INVOICE_POLICY",
    "CheckpointStore",
    "MergePolicy",
    "MergeRule",
    "PostgresDatabase",
    "UpsertOutcome",
    "UpsertWriter",
    "stable_lock_key",
]
