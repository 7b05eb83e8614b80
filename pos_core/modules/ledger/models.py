"""
Modelos SQLAlchemy del ledger de caja

- ShiftRecord: turnos por local
- DrawerRecord: cajas abiertas dentro de un turno
- MovementRecord: movimientos de caja (append-only)

Solo puede existir un turno abierto y una caja abierta por local.
"""

from pos_core.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from uuid import uuid4
from pos_core.common.mixins import TimestampMixin
from pos_core.modules.ledger.schemas import SessionStatus


def utcnow():
    return datetime.now(timezone.utc)


class ShiftRecord(Base, TimestampMixin):
    """Turno (mañana/tarde/noche) abierto para un local"""
    __tablename__ = "turnos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    location_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    initial_balance = Column(Numeric(15, 2), nullable=False, default=0)
    tag = Column(String(100), nullable=True)
    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.OPEN, index=True)

    opened_by = Column(Uuid(as_uuid=True), nullable=True)
    closed_by = Column(Uuid(as_uuid=True), nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    drawers = relationship("DrawerRecord", back_populates="shift")


class DrawerRecord(Base, TimestampMixin):
    """Caja registradora abierta dentro de un turno"""
    __tablename__ = "cajas"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    turno_id = Column(Uuid(as_uuid=True), ForeignKey("turnos.id"), nullable=False, index=True)
    location_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    status = Column(Enum(SessionStatus), nullable=False, default=SessionStatus.OPEN, index=True)

    # Balances
    opening_amount = Column(Numeric(15, 2), nullable=False, default=0)
    closing_amount = Column(Numeric(15, 2), nullable=True)  # Solo se llena al cerrar
    theoretical_amount = Column(Numeric(15, 2), nullable=True)
    variance = Column(Numeric(15, 2), nullable=True)

    opened_by = Column(Uuid(as_uuid=True), nullable=True)
    closed_by = Column(Uuid(as_uuid=True), nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    shift = relationship("ShiftRecord", back_populates="drawers")
    movements = relationship("MovementRecord", back_populates="drawer")


class MovementRecord(Base):
    """Movimiento de caja; el monto de un ajuste puede ser negativo"""
    __tablename__ = "movimientos_caja"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    turno_id = Column(Uuid(as_uuid=True), ForeignKey("turnos.id"), nullable=False, index=True)
    drawer_id = Column(Uuid(as_uuid=True), ForeignKey("cajas.id"), nullable=True, index=True)
    type = Column(String(20), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    description = Column(Text, nullable=True)
    operator_id = Column(Uuid(as_uuid=True), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    drawer = relationship("DrawerRecord", back_populates="movements")
