"""
Modelos de base de datos (esquema local).

El motor de sync escribe con psycopg; estos modelos existen para que Alembic
genere y verifique las migraciones del esquema destino.
"""
from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func


# Base para modelos de SQLAlchemy
Base = declarative_base()


class SyncStateModel(Base):
    """Watermark por categoría de sync (epoch en segundos)."""

    __tablename__ = "sync_state"

    category = Column(String(64), primary_key=True)
    watermark = Column(BigInteger, nullable=False, server_default="0")
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<SyncState(category={self.category}, watermark={self.watermark})>"


class SyncRunModel(Base):
    """Historial de corridas (diagnóstico para operadores)."""

    __tablename__ = "sync_runs"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    category = Column(String(64), nullable=False, index=True)
    mode = Column(String(32), nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    finished_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(16), nullable=False)
    error = Column(Text, nullable=True)
    watermark_before = Column(BigInteger, nullable=True)
    watermark_after = Column(BigInteger, nullable=True)
    records_written = Column(Integer, nullable=True)
    records_failed = Column(Integer, nullable=True)


class CustomerModel(Base):
    """Cliente del ledger."""

    __tablename__ = "customers"

    id = Column(String(255), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    metadata_ = Column("metadata", JSONB, nullable=False, server_default="{}")


class InvoiceModel(Base):
    """Factura (registro primario)."""

    __tablename__ = "invoices"

    id = Column(String(255), primary_key=True)
    owner_id = Column(String(255), nullable=True, index=True)
    email = Column(String(255), nullable=True)
    number = Column(String(255), nullable=True)
    status = Column(String(32), nullable=True)
    amount_due = Column(BigInteger, nullable=True)
    amount_paid = Column(BigInteger, nullable=True)
    amount_remaining = Column(BigInteger, nullable=True)
    paid = Column(Boolean, nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    linked_secondary_id = Column(String(255), nullable=True, index=True)
    payment_intent = Column(String(255), nullable=True)
    subscription = Column(String(255), nullable=True)


class ChargeModel(Base):
    """Cargo (registro secundario). primary_ref NULL = huérfano."""

    __tablename__ = "charges"

    id = Column(String(255), primary_key=True)
    primary_ref = Column(String(255), nullable=True, index=True)
    owner_id = Column(String(255), nullable=True, index=True)
    status = Column(String(32), nullable=True)
    failure_reason = Column(Text, nullable=True)
    card_brand = Column(String(32), nullable=True)
    card_last4 = Column(String(4), nullable=True)
    card_exp_month = Column(Integer, nullable=True)
    card_exp_year = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
