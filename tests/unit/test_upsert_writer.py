from __future__ import annotations

from datetime import datetime, timezone

import psycopg
import pytest
from psycopg.types.json import Jsonb

from billing_sync.infrastructure.database.merge_policies import (
    CHARGE_POLICY,
    CUSTOMER_POLICY,
    INVOICE_POLICY,
    MergePolicy,
    MergeRule,
)
from billing_sync.infrastructure.database.upsert_writer import UpsertOutcome, UpsertWriter, build_upsert_sql
from billing_sync.shared.exceptions.sync import RecordWriteError


class _DummyCursor:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.executed_sql: str | None = None
        self.executed_values = None
        self._result = result
        self._error = error

    def execute(self, sql: str, values=None) -> None:
        if self._error:
            raise self._error
        self.executed_sql = sql
        self.executed_values = values

    def fetchone(self):
        return self._result

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


class _DummyConn:
    def __init__(self, cursor: _DummyCursor) -> None:
        self._cursor = cursor

    def cursor(self):
        return self._cursor


def _charge_row(**overrides) -> dict:
    row = {
        "id": "ch_1",
        "primary_ref": "in_1",
        "owner_id": "cus_1",
        "status": "succeeded",
        "failure_reason": None,
        "card_brand": "visa",
        "card_last4": "4242",
        "card_exp_month": 12,
        "card_exp_year": 2030,
        "created_at": datetime(2025, 12, 16, 10, 15, 0, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def test_charge_sql_never_clears_primary_ref() -> None:
    sql = build_upsert_sql(CHARGE_POLICY)
    assert 'ON CONFLICT ("id")' in sql
    assert '"primary_ref" = COALESCE("charges"."primary_ref", EXCLUDED."primary_ref")' in sql
    assert '"status" = EXCLUDED."status"' in sql
    assert "RETURNING" in sql and "(xmax = 0) AS is_insert" in sql


def test_immutable_columns_are_not_in_update_clause() -> None:
    sql = build_upsert_sql(INVOICE_POLICY)
    update_clause = sql.split("DO UPDATE SET", 1)[1]
    for column in INVOICE_POLICY.immutable_columns:
        assert f'"{column}" =' not in update_clause
    assert "owner_id" in INVOICE_POLICY.immutable_columns
    assert "created_at" in INVOICE_POLICY.immutable_columns


def test_policy_without_mutable_columns_still_returns_row() -> None:
    policy = MergePolicy(table="t", entity="t", columns=("id", "a"), rules={})
    sql = build_upsert_sql(policy)
    assert 'DO UPDATE SET "id" = EXCLUDED."id"' in sql


def test_policy_rejects_rules_on_unknown_columns() -> None:
    with pytest.raises(ValueError):
        MergePolicy(table="t", entity="t", columns=("id",), rules={"nope": MergeRule.OVERWRITE})
    with pytest.raises(ValueError):
        MergePolicy(table="t", entity="t", columns=("id",), rules={"id": MergeRule.OVERWRITE})


def test_upsert_reports_insert_and_update() -> None:
    writer = UpsertWriter()

    inserted = writer.upsert(_DummyConn(_DummyCursor({"id": "ch_1", "is_insert": True})), CHARGE_POLICY, _charge_row())
    updated = writer.upsert(_DummyConn(_DummyCursor({"id": "ch_1", "is_insert": False})), CHARGE_POLICY, _charge_row())

    assert inserted is UpsertOutcome.INSERTED
    assert updated is UpsertOutcome.UPDATED


def test_values_follow_policy_column_order() -> None:
    cursor = _DummyCursor({"id": "ch_1", "is_insert": True})
    UpsertWriter().upsert(_DummyConn(cursor), CHARGE_POLICY, _charge_row())
    assert cursor.executed_values[0] == "ch_1"
    assert cursor.executed_values[1] == "in_1"
    assert len(cursor.executed_values) == len(CHARGE_POLICY.columns)


def test_json_columns_are_wrapped() -> None:
    cursor = _DummyCursor({"id": "cus_1", "is_insert": True})
    row = {
        "id": "cus_1",
        "email": None,
        "name": None,
        "phone": None,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "metadata": {"plan": "pro"},
    }
    UpsertWriter().upsert(_DummyConn(cursor), CUSTOMER_POLICY, row)
    assert isinstance(cursor.executed_values[-1], Jsonb)


def test_missing_primary_key_is_record_error() -> None:
    with pytest.raises(RecordWriteError):
        UpsertWriter().upsert(_DummyConn(_DummyCursor()), CHARGE_POLICY, _charge_row(id=None))


def test_constraint_error_becomes_record_error() -> None:
    cursor = _DummyCursor(error=psycopg.errors.StringDataRightTruncation("value too long"))
    with pytest.raises(RecordWriteError) as exc_info:
        UpsertWriter().upsert(_DummyConn(cursor), CHARGE_POLICY, _charge_row())
    assert exc_info.value.entity_id == "ch_1"


def test_lost_connection_propagates() -> None:
    cursor = _DummyCursor(error=psycopg.OperationalError("server closed the connection"))
    with pytest.raises(psycopg.OperationalError):
        UpsertWriter().upsert(_DummyConn(cursor), CHARGE_POLICY, _charge_row())


def test_exists_uses_point_lookup() -> None:
    cursor = _DummyCursor({"found": 1})
    assert UpsertWriter().exists(_DummyConn(cursor), CHARGE_POLICY, "ch_1") is True
    assert 'FROM "charges" WHERE "id" = %s' in cursor.executed_sql
    assert cursor.executed_values == ("ch_1",)

    assert UpsertWriter().exists(_DummyConn(_DummyCursor(None)), CHARGE_POLICY, "ch_2") is False
