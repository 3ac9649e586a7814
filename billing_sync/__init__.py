"""
Sincronización incremental one-way: ledger de pagos (API tipo Stripe) -> PostgreSQL.

Este paquete está diseñado para ejecutarse como job (cron / task scheduler).

Objetivos de diseño:
- Idempotencia: se puede ejecutar N veces sin duplicar datos.
- Incremental: cada categoría avanza un watermark (epoch de `created`) solo al
  completar la corrida.
- Reconciliación: cargos vinculados a facturas y cargos huérfanos convergen en
  la misma fila.
"""

__version__ = "1.0.0"
