"""
Lectura de colecciones remotas del ledger (solo lectura contra la fuente).
"""
from billing_sync.infrastructure.external.ledger.ledger_client import LedgerClient, LedgerCredentials, Page

__all__ = ["LedgerClient", "LedgerCredentials", "Page"]
