"""
Normalizador de registros del ledger.

Transforma el JSON crudo de la API (customers, invoices, charges) a las filas
locales. Funciones puras, sin I/O: el mismo registro produce siempre la misma
fila, y el UpsertWriter se apoya en eso para ser idempotente.

Reglas:
- Campos opcionales ausentes (o string vacío) -> None, nunca un valor de negocio
  por defecto (un due_date faltante no se convierte en "ahora").
- Montos: enteros en unidades menores, sin conversión.
- Timestamps: epoch en segundos -> datetime UTC aware.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from billing_sync.domain.entities.records import ChargeRow, CustomerRow, InvoiceRow
from billing_sync.shared.exceptions.sync import RecordNormalizationError
from billing_sync.shared.utils.datetime_utils import DateTimeUtils


def _optional(value: Any) -> Any:
    """None y "" se tratan como ausentes."""
    if value is None or value == "":
        return None
    return value


def _ref_id(value: Any) -> Optional[str]:
    """
    Extrae el id de una referencia, que puede venir como string o expandida
    como objeto ({"id": "...", ...}).
    """
    if isinstance(value, dict):
        value = value.get("id")
    return _optional(value)


def _optional_int(value: Any) -> Optional[int]:
    value = _optional(value)
    return int(value) if value is not None else None


def _require_id(record: Dict[str, Any], entity: str) -> str:
    record_id = record.get("id")
    if not record_id:
        raise RecordNormalizationError(entity, None, "registro sin 'id'")
    return str(record_id)


def record_created(record: Dict[str, Any], entity: str = "record") -> int:
    """
    Retorna el `created` (epoch en segundos) usado para la ventana y el watermark.

    Raises:
        RecordNormalizationError: si el registro no trae un created entero
    """
    created = record.get("created")
    if created is None or isinstance(created, bool):
        raise RecordNormalizationError(entity, record.get("id"), "registro sin 'created'")
    try:
        return int(created)
    except (TypeError, ValueError) as e:
        raise RecordNormalizationError(entity, record.get("id"), f"'created' inválido: {created!r}") from e


def normalize_customer(record: Dict[str, Any]) -> CustomerRow:
    record_id = _require_id(record, "customer")
    metadata = record.get("metadata") or {}

    return CustomerRow(
        id=record_id,
        email=_optional(record.get("email")),
        name=_optional(record.get("name")),
        phone=_optional(record.get("phone")),
        created_at=DateTimeUtils.from_epoch(record_created(record, "customer")),
        metadata={str(k): str(v) for k, v in metadata.items()},
    )


def normalize_invoice(record: Dict[str, Any]) -> InvoiceRow:
    record_id = _require_id(record, "invoice")

    paid = record.get("paid")
    return InvoiceRow(
        id=record_id,
        owner_id=_ref_id(record.get("customer")),
        email=_optional(record.get("customer_email")),
        number=_optional(record.get("number")),
        status=_optional(record.get("status")),
        amount_due=_optional_int(record.get("amount_due")),
        amount_paid=_optional_int(record.get("amount_paid")),
        amount_remaining=_optional_int(record.get("amount_remaining")),
        paid=bool(paid) if paid is not None else None,
        due_at=DateTimeUtils.from_epoch(_optional(record.get("due_date"))),
        created_at=DateTimeUtils.from_epoch(record_created(record, "invoice")),
        linked_secondary_id=_ref_id(record.get("latest_charge")),
        payment_intent=_ref_id(record.get("payment_intent")),
        subscription=_ref_id(record.get("subscription")),
    )


def normalize_charge(record: Dict[str, Any], *, primary_ref: Optional[str] = None) -> ChargeRow:
    """
    Normaliza un cargo.

    Args:
        record: cargo crudo
        primary_ref: id de factura que lo referencia (ruta vinculada); si no se
            pasa, se usa la referencia propia del cargo (`invoice`) si existe
    """
    record_id = _require_id(record, "charge")
    card = (record.get("payment_method_details") or {}).get("card") or {}

    return ChargeRow(
        id=record_id,
        primary_ref=primary_ref or _ref_id(record.get("invoice")),
        owner_id=_ref_id(record.get("customer")),
        status=_optional(record.get("status")),
        failure_reason=_optional(record.get("failure_message")),
        card_brand=_optional(card.get("brand")),
        card_last4=_optional(card.get("last4")),
        card_exp_month=_optional_int(card.get("exp_month")),
        card_exp_year=_optional_int(card.get("exp_year")),
        created_at=DateTimeUtils.from_epoch(record_created(record, "charge")),
    )


def linked_invoice_charge(record: Dict[str, Any]) -> Optional[str]:
    """Id del cargo vinculado a una factura, o None."""
    return _ref_id(record.get("latest_charge"))


def normalize(
    normalizer: Callable[..., Any],
    record: Dict[str, Any],
    *,
    entity: str,
    **kwargs: Any,
) -> Any:
    """
    Aplica un normalizador y convierte datos con tipos inesperados en un
    error por registro (no debe abortar la corrida).
    """
    try:
        return normalizer(record, **kwargs)
    except RecordNormalizationError:
        raise
    except (TypeError, ValueError, AttributeError) as e:
        raise RecordNormalizationError(entity, record.get("id"), str(e)) from e
