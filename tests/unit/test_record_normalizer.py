"""
Tests unitarios para el normalizador de registros del ledger.
"""
from datetime import datetime, timezone

import pytest

from billing_sync.application.services.record_normalizer import (
    linked_invoice_charge,
    normalize,
    normalize_charge,
    normalize_customer,
    normalize_invoice,
    record_created,
)
from billing_sync.shared.exceptions.sync import RecordNormalizationError


class TestNormalizeInvoice:
    def test_maps_fields_and_keeps_minor_units(self):
        """Verifica el mapeo de factura: montos enteros, fechas UTC y referencias."""
        row = normalize_invoice(
            {
                "id": "in_1",
                "created": 1700000000,
                "customer": "cus_1",
                "customer_email": "ana@example.com",
                "number": "A-0001",
                "status": "open",
                "amount_due": 12345,
                "amount_paid": 0,
                "amount_remaining": 12345,
                "paid": False,
                "due_date": 1700086400,
                "latest_charge": {"id": "ch_1", "object": "charge"},
                "payment_intent": "pi_1",
                "subscription": None,
            }
        )

        assert row.owner_id == "cus_1"
        assert row.email == "ana@example.com"
        assert row.amount_due == 12345
        assert row.paid is False
        assert row.created_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        assert row.due_at == datetime(2023, 11, 15, 22, 13, 20, tzinfo=timezone.utc)
        assert row.linked_secondary_id == "ch_1"
        assert row.payment_intent == "pi_1"
        assert row.subscription is None

    def test_missing_optional_fields_are_none(self):
        """Verifica que un due_date ausente no se reemplaza por 'ahora'."""
        row = normalize_invoice({"id": "in_2", "created": 10, "customer_email": ""})

        assert row.due_at is None
        assert row.email is None
        assert row.paid is None
        assert row.linked_secondary_id is None

    def test_linked_charge_id(self):
        assert linked_invoice_charge({"latest_charge": "ch_9"}) == "ch_9"
        assert linked_invoice_charge({"latest_charge": None}) is None
        assert linked_invoice_charge({}) is None


class TestNormalizeCharge:
    def test_card_details_and_failure(self):
        row = normalize_charge(
            {
                "id": "ch_1",
                "created": 100,
                "customer": "cus_1",
                "status": "failed",
                "failure_message": "Your card was declined.",
                "payment_method_details": {
                    "card": {"brand": "mastercard", "last4": "4444", "exp_month": 3, "exp_year": 2031}
                },
            }
        )

        assert row.card_brand == "mastercard"
        assert row.card_last4 == "4444"
        assert row.card_exp_month == 3
        assert row.failure_reason == "Your card was declined."
        assert row.primary_ref is None

    def test_explicit_primary_ref_wins_over_own_reference(self):
        record = {"id": "ch_2", "created": 100, "invoice": "in_old"}

        assert normalize_charge(record).primary_ref == "in_old"
        assert normalize_charge(record, primary_ref="in_new").primary_ref == "in_new"

    def test_without_payment_method_details(self):
        row = normalize_charge({"id": "ch_3", "created": 100, "payment_method_details": None})
        assert row.card_brand is None
        assert row.card_exp_year is None


class TestNormalizeCustomer:
    def test_metadata_is_stringified(self):
        row = normalize_customer({"id": "cus_1", "created": 5, "metadata": {"tier": 2}, "phone": ""})
        assert row.metadata == {"tier": "2"}
        assert row.phone is None

    def test_missing_id_is_normalization_error(self):
        with pytest.raises(RecordNormalizationError):
            normalize_customer({"created": 5})


class TestRecordCreated:
    def test_valid_created(self):
        assert record_created({"id": "x", "created": "1500"}) == 1500

    @pytest.mark.parametrize("created", [None, "mañana", True])
    def test_invalid_created(self, created):
        with pytest.raises(RecordNormalizationError):
            record_created({"id": "x", "created": created}, "invoice")


def test_normalize_wraps_unexpected_types():
    """Verifica que un tipo inesperado se convierte en error por registro."""
    record = {"id": "in_1", "created": 10, "amount_due": "no-es-numero"}

    with pytest.raises(RecordNormalizationError) as exc_info:
        normalize(normalize_invoice, record, entity="invoice")

    assert exc_info.value.entity == "invoice"
    assert exc_info.value.entity_id == "in_1"
