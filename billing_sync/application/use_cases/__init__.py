"""
Casos de uso de sincronizacion.
"""
from .sync_categories import CUSTOMERS, INVOICES, SyncCategory, build_categories
from .sync_orchestrator import PassOptions, SyncOrchestrator

__all__ = [
    "CUSTOMERS",
    "INVOICES",
    "PassOptions",
    "SyncCategory",
    "SyncOrchestrator",
    "build_categories",
]
