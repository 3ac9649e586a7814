"""
Filas locales (forma de las tablas PostgreSQL) para las entidades del ledger.

Se mantienen libres de I/O: el normalizador las produce y el UpsertWriter
las persiste. Los campos opcionales usan None como marcador de "ausente".
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class CustomerRow:
    """Cliente del ledger. Entidad independiente (sin vínculos)."""

    id: str
    email: Optional[str]
    name: Optional[str]
    phone: Optional[str]
    created_at: datetime
    metadata: dict[str, str] = field(default_factory=dict)

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class InvoiceRow:
    """
    Factura (registro primario).

    linked_secondary_id apunta al último cargo de la factura, si existe.
    Los montos están en unidades menores (centavos) como enteros.
    """

    id: str
    owner_id: Optional[str]
    email: Optional[str]
    number: Optional[str]
    status: Optional[str]
    amount_due: Optional[int]
    amount_paid: Optional[int]
    amount_remaining: Optional[int]
    paid: Optional[bool]
    due_at: Optional[datetime]
    created_at: datetime
    linked_secondary_id: Optional[str]
    payment_intent: Optional[str]
    subscription: Optional[str]

    def as_row(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChargeRow:
    """
    Cargo (registro secundario).

    primary_ref es None cuando el cargo es huérfano (no pertenece a ninguna factura).
    """

    id: str
    primary_ref: Optional[str]
    owner_id: Optional[str]
    status: Optional[str]
    failure_reason: Optional[str]
    card_brand: Optional[str]
    card_last4: Optional[str]
    card_exp_month: Optional[int]
    card_exp_year: Optional[int]
    created_at: datetime

    def as_row(self) -> dict[str, Any]:
        return asdict(self)
