"""
Servicios de la capa de aplicacion.
"""
from .reconciliation import ReconcileStatus, ReconciliationEngine, SecondaryLink
from .record_normalizer import (
    normalize,
    normalize_charge,
    normalize_customer,
    normalize_invoice,
    record_created,
)

__all__ = [
    "ReconcileStatus",
    "ReconciliationEngine",
    "SecondaryLink",
    "normalize",
    "normalize_charge",
    "normalize_customer",
    "normalize_invoice",
    "record_created",
]
