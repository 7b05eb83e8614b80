"""
Contrato del ledger y su implementación con SQLAlchemy

El ledger es la fuente de verdad de "¿hay un turno/caja abierto en este
local?" y persiste los movimientos de caja. El motor solo conoce el protocolo
`Ledger`; `SQLLedger` es la implementación de referencia sobre una Session.

Errores:
- Conflict: ya abierto / ya cerrado (lleva `existing` cuando aplica)
- NotFound: turno o caja inexistente
- CollaboratorError: cualquier otra falla de base de datos
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import and_, asc
from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable
from uuid import UUID
import logging

from pos_core.common.exceptions import CollaboratorError, Conflict, NotFound
from pos_core.modules.ledger.models import ShiftRecord, DrawerRecord, MovementRecord, utcnow
from pos_core.modules.ledger.schemas import (
    ShiftSession, CashSession, CashMovement, MovementType, SessionStatus
)

logger = logging.getLogger(__name__)


@runtime_checkable
class Ledger(Protocol):
    """Persistencia de turnos, cajas y movimientos"""

    def open_shift(self, location_id: UUID, initial_balance: Decimal, tag: Optional[str] = None,
                   operator_id: Optional[UUID] = None) -> ShiftSession:
        ...

    def get_open_shift(self, location_id: UUID) -> Optional[ShiftSession]:
        ...

    def close_shift(self, shift_id: UUID, operator_id: Optional[UUID] = None) -> ShiftSession:
        ...

    def open_drawer(self, shift_id: UUID, location_id: UUID, opening_amount: Decimal,
                    operator_id: Optional[UUID] = None) -> CashSession:
        ...

    def get_open_drawer(self, location_id: UUID) -> Optional[CashSession]:
        ...

    def close_drawer(self, drawer_id: UUID, closing_amount: Decimal, theoretical_amount: Decimal,
                     variance: Decimal, operator_id: Optional[UUID] = None) -> CashSession:
        ...

    def append_movement(self, turno_id: UUID, type: MovementType, amount: Decimal,
                        description: Optional[str] = None, drawer_id: Optional[UUID] = None,
                        operator_id: Optional[UUID] = None) -> CashMovement:
        ...

    def list_movements(self, turno_id: Optional[UUID] = None,
                       drawer_id: Optional[UUID] = None) -> List[CashMovement]:
        ...


class SQLLedger:
    """Ledger sobre SQLAlchemy (una Session por instancia)"""

    def __init__(self, db: Session):
        self.db = db

    # ===== TURNOS =====

    def open_shift(self, location_id: UUID, initial_balance: Decimal, tag: Optional[str] = None,
                   operator_id: Optional[UUID] = None) -> ShiftSession:
        """Abrir turno; Conflict si el local ya tiene uno abierto"""
        existing = self._open_shift_record(location_id)
        if existing:
            raise Conflict(
                "Turno ya abierto para este local",
                existing=ShiftSession.model_validate(existing)
            )

        record = ShiftRecord(
            location_id=location_id,
            initial_balance=initial_balance,
            tag=tag,
            status=SessionStatus.OPEN,
            opened_by=operator_id,
            opened_at=utcnow()
        )
        self._commit(record, "Error de integridad al abrir el turno")
        return ShiftSession.model_validate(record)

    def get_open_shift(self, location_id: UUID) -> Optional[ShiftSession]:
        record = self._open_shift_record(location_id)
        return ShiftSession.model_validate(record) if record else None

    def close_shift(self, shift_id: UUID, operator_id: Optional[UUID] = None) -> ShiftSession:
        record = self._query(ShiftRecord, shift_id, "Turno no encontrado")
        if record.status == SessionStatus.CLOSED:
            raise Conflict("El turno ya está cerrado", existing=ShiftSession.model_validate(record))

        record.status = SessionStatus.CLOSED
        record.closed_by = operator_id
        record.closed_at = utcnow()
        self._commit(record, "Error de integridad al cerrar el turno")
        return ShiftSession.model_validate(record)

    # ===== CAJAS =====

    def open_drawer(self, shift_id: UUID, location_id: UUID, opening_amount: Decimal,
                    operator_id: Optional[UUID] = None) -> CashSession:
        """Abrir caja dentro de un turno abierto; Conflict si el local ya tiene caja abierta"""
        shift = self._query(ShiftRecord, shift_id, "Turno no encontrado")
        if shift.status != SessionStatus.OPEN:
            raise Conflict("El turno debe estar abierto para abrir la caja")

        existing = self._open_drawer_record(location_id)
        if existing:
            raise Conflict(
                "Caja ya abierta para este local",
                existing=CashSession.model_validate(existing)
            )

        record = DrawerRecord(
            turno_id=shift_id,
            location_id=location_id,
            status=SessionStatus.OPEN,
            opening_amount=opening_amount,
            opened_by=operator_id,
            opened_at=utcnow()
        )
        self._commit(record, "Error de integridad al abrir la caja")
        return CashSession.model_validate(record)

    def get_open_drawer(self, location_id: UUID) -> Optional[CashSession]:
        record = self._open_drawer_record(location_id)
        return CashSession.model_validate(record) if record else None

    def close_drawer(self, drawer_id: UUID, closing_amount: Decimal, theoretical_amount: Decimal,
                     variance: Decimal, operator_id: Optional[UUID] = None) -> CashSession:
        record = self._query(DrawerRecord, drawer_id, "Caja no encontrada")
        if record.status == SessionStatus.CLOSED:
            raise Conflict("La caja ya está cerrada", existing=CashSession.model_validate(record))

        record.status = SessionStatus.CLOSED
        record.closing_amount = closing_amount
        record.theoretical_amount = theoretical_amount
        record.variance = variance
        record.closed_by = operator_id
        record.closed_at = utcnow()
        self._commit(record, "Error de integridad al cerrar la caja")
        return CashSession.model_validate(record)

    # ===== MOVIMIENTOS =====

    def append_movement(self, turno_id: UUID, type: MovementType, amount: Decimal,
                        description: Optional[str] = None, drawer_id: Optional[UUID] = None,
                        operator_id: Optional[UUID] = None) -> CashMovement:
        record = MovementRecord(
            turno_id=turno_id,
            drawer_id=drawer_id,
            type=MovementType.normalize(type),
            amount=amount,
            description=description,
            operator_id=operator_id,
            timestamp=utcnow()
        )
        self._commit(record, "Error de integridad al registrar el movimiento")
        return CashMovement.model_validate(record)

    def list_movements(self, turno_id: Optional[UUID] = None,
                       drawer_id: Optional[UUID] = None) -> List[CashMovement]:
        try:
            query = self.db.query(MovementRecord)
            if turno_id:
                query = query.filter(MovementRecord.turno_id == turno_id)
            if drawer_id:
                query = query.filter(MovementRecord.drawer_id == drawer_id)
            records = query.order_by(asc(MovementRecord.timestamp)).all()
        except SQLAlchemyError as e:
            logger.error(f"Error listando movimientos: {e}")
            raise CollaboratorError(f"Error al obtener movimientos: {str(e)}")
        return [CashMovement.model_validate(r) for r in records]

    # ===== HELPERS =====

    def _open_shift_record(self, location_id: UUID) -> Optional[ShiftRecord]:
        try:
            return self.db.query(ShiftRecord).filter(
                and_(
                    ShiftRecord.location_id == location_id,
                    ShiftRecord.status == SessionStatus.OPEN
                )
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error consultando turno abierto: {e}")
            raise CollaboratorError(f"Error al obtener el turno: {str(e)}")

    def _open_drawer_record(self, location_id: UUID) -> Optional[DrawerRecord]:
        try:
            return self.db.query(DrawerRecord).filter(
                and_(
                    DrawerRecord.location_id == location_id,
                    DrawerRecord.status == SessionStatus.OPEN
                )
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Error consultando caja abierta: {e}")
            raise CollaboratorError(f"Error al obtener la caja: {str(e)}")

    def _query(self, model, record_id: UUID, not_found: str):
        try:
            record = self.db.query(model).filter(model.id == record_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Error consultando {model.__tablename__}: {e}")
            raise CollaboratorError(f"Error interno del ledger: {str(e)}")
        if not record:
            raise NotFound(not_found, id=record_id)
        return record

    def _commit(self, record, integrity_detail: str) -> None:
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except IntegrityError:
            self.db.rollback()
            raise Conflict(integrity_detail)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error en el ledger: {e}")
            raise CollaboratorError(f"Error interno del ledger: {str(e)}")
