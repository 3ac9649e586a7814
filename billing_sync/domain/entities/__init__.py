"""
Entidades del dominio.
"""
from billing_sync.domain.entities.records import ChargeRow, CustomerRow, InvoiceRow

__all__ = [
    "ChargeRow",
    "CustomerRow",
    "InvoiceRow",
]
