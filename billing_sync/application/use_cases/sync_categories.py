"""
Categorías de sync (colección remota -> tabla Postgres).

Cada categoría tiene su propio watermark en sync_state:
- customers: solo colección primaria, sin vínculos.
- invoices: facturas como primario + cargos como secundario (vinculados por
  latest_charge y barrido de huérfanos). Facturas y cargos comparten el
  watermark de la categoría.

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from billing_sync.application.services.reconciliation import SecondaryLink
from billing_sync.application.services.record_normalizer import (
    linked_invoice_charge,
    normalize_charge,
    normalize_customer,
    normalize_invoice,
)
from billing_sync.infrastructure.database.merge_policies import (
    CHARGE_POLICY,
    CUSTOMER_POLICY,
    INVOICE_POLICY,
    MergePolicy,
)


CUSTOMERS = "customers"
INVOICES = "invoices"


@dataclass(frozen=True)
class SyncCategory:
    """
    Config de una corrida.

    - name: clave del watermark en sync_state
    - primary_collection / primary_policy / primary_normalizer: colección principal
    - link_of: fn(record) -> id del secundario vinculado (None si la categoría no tiene vínculos)
    - secondary: colección secundaria para vinculados y barrido de huérfanos
    - list_filters: filtros extra para listar la colección primaria (p.ej. status)
    """

    name: str
    primary_collection: str
    primary_policy: MergePolicy
    primary_normalizer: Callable[[Dict[str, Any]], Any]
    link_of: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None
    secondary: Optional[SecondaryLink] = None
    list_filters: Dict[str, Any] = field(default_factory=dict)


def customers_category() -> SyncCategory:
    return SyncCategory(
        name=CUSTOMERS,
        primary_collection="customers",
        primary_policy=CUSTOMER_POLICY,
        primary_normalizer=normalize_customer,
    )


def invoices_category(*, status_filter: str = "") -> SyncCategory:
    """
    Facturas + cargos.

    status_filter (opcional) restringe el listado de facturas, p.ej. "open".
    """
    return SyncCategory(
        name=INVOICES,
        primary_collection="invoices",
        primary_policy=INVOICE_POLICY,
        primary_normalizer=normalize_invoice,
        link_of=linked_invoice_charge,
        secondary=SecondaryLink(
            collection="charges",
            policy=CHARGE_POLICY,
            normalizer=normalize_charge,
        ),
        list_filters={"status": status_filter} if status_filter else {},
    )


def build_categories(*, invoice_status_filter: str = "") -> Dict[str, SyncCategory]:
    """Categorías disponibles en el orden en que se ejecutan."""
    return {
        CUSTOMERS: customers_category(),
        INVOICES: invoices_category(status_filter=invoice_status_filter),
    }
