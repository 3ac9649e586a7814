"""
Políticas de merge por entidad (resolución de conflictos del UPSERT).

Cada tabla declara qué columnas se sobreescriben en un conflicto de PK y
cuáles solo se completan si estaban vacías. Cualquier columna no declarada
(id, created_at, owner_id, ...) es inmutable después del INSERT.

Este módulo no realiza I/O: solo define configuración.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class MergeRule(str, Enum):
    """Cómo se resuelve una columna cuando el id ya existe."""

    OVERWRITE = "overwrite"            # col = EXCLUDED.col (last-write-wins)
    FILL_IF_ABSENT = "fill_if_absent"  # col = COALESCE(tabla.col, EXCLUDED.col)


@dataclass(frozen=True)
class MergePolicy:
    """
    Config de merge de una tabla destino.

    - table: tabla Postgres destino
    - entity: nombre lógico para logs
    - columns: orden de columnas del INSERT (coincide con los campos de la fila)
    - rules: columnas mutables y su regla
    - json_columns: columnas que se envían como JSONB
    """

    table: str
    entity: str
    columns: tuple[str, ...]
    rules: dict[str, MergeRule]
    key: str = "id"
    json_columns: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        unknown = set(self.rules) - set(self.columns)
        if unknown:
            raise ValueError(f"Reglas de merge sobre columnas inexistentes en {self.table}: {sorted(unknown)}")
        if self.key in self.rules:
            raise ValueError(f"La PK '{self.key}' de {self.table} no puede ser mutable")

    @property
    def immutable_columns(self) -> tuple[str, ...]:
        return tuple(c for c in self.columns if c != self.key and c not in self.rules)


CUSTOMER_POLICY = MergePolicy(
    table="customers",
    entity="customer",
    columns=("id", "email", "name", "phone", "created_at", "metadata"),
    rules={
        "email": MergeRule.OVERWRITE,
        "name": MergeRule.OVERWRITE,
        "phone": MergeRule.OVERWRITE,
        "metadata": MergeRule.OVERWRITE,
    },
    json_columns=frozenset({"metadata"}),
)

INVOICE_POLICY = MergePolicy(
    table="invoices",
    entity="invoice",
    columns=(
        "id", "owner_id", "email", "number", "status",
        "amount_due", "amount_paid", "amount_remaining", "paid",
        "due_at", "created_at", "linked_secondary_id", "payment_intent", "subscription",
    ),
    rules={
        "status": MergeRule.OVERWRITE,
        "amount_due": MergeRule.OVERWRITE,
        "amount_paid": MergeRule.OVERWRITE,
        "amount_remaining": MergeRule.OVERWRITE,
        "paid": MergeRule.OVERWRITE,
        "due_at": MergeRule.OVERWRITE,
        "linked_secondary_id": MergeRule.FILL_IF_ABSENT,
        "payment_intent": MergeRule.FILL_IF_ABSENT,
        "subscription": MergeRule.FILL_IF_ABSENT,
    },
)

# primary_ref es FILL_IF_ABSENT: un barrido de huérfanos nunca borra un vínculo
# y un descubrimiento vinculado posterior completa una fila insertada como huérfana.
CHARGE_POLICY = MergePolicy(
    table="charges",
    entity="charge",
    columns=(
        "id", "primary_ref", "owner_id", "status", "failure_reason",
        "card_brand", "card_last4", "card_exp_month", "card_exp_year", "created_at",
    ),
    rules={
        "status": MergeRule.OVERWRITE,
        "failure_reason": MergeRule.OVERWRITE,
        "primary_ref": MergeRule.FILL_IF_ABSENT,
        "card_brand": MergeRule.FILL_IF_ABSENT,
        "card_last4": MergeRule.FILL_IF_ABSENT,
        "card_exp_month": MergeRule.FILL_IF_ABSENT,
        "card_exp_year": MergeRule.FILL_IF_ABSENT,
    },
)
