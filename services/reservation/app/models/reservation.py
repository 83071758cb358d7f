import uuid
from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, JSON, String, Text, Uuid
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.errors import InvalidTransitionError


class ReservationStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELED = "canceled"

    ALL = {PENDING, CONFIRMED, COMPLETED, CANCELED}
    # Estados que ocupam horário do profissional e cadeira do salão
    BLOCKING = {PENDING, CONFIRMED, COMPLETED}

    TRANSITIONS = {
        PENDING: {CONFIRMED, CANCELED},
        CONFIRMED: {COMPLETED, CANCELED},
        COMPLETED: set(),
        CANCELED: set(),
    }


class RecordState:
    ACTIVE = "active"
    ARCHIVED = "archived"
    PURGED = "purged"

    ALL = {ACTIVE, ARCHIVED, PURGED}

    TRANSITIONS = {
        ACTIVE: {ARCHIVED},
        ARCHIVED: {ACTIVE, PURGED},
        PURGED: set(),
    }


class PaymentMethod:
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    OTHER = "other"

    ALL = {CASH, CREDIT_CARD, OTHER}


class PaymentStatus:
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"

    ALL = {UNPAID, PAID, REFUNDED}


def ensure_transition(entity: str, transitions: dict, current: str, target: str) -> None:
    if target not in transitions.get(current, set()):
        raise InvalidTransitionError(entity, current, target)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_staff_interval", "tenant_id", "staff_id", "start_time_unix", "end_time_unix"),
        Index("ix_reservations_org_interval", "tenant_id", "org_id", "start_time_unix", "end_time_unix"),
        CheckConstraint("start_time_unix < end_time_unix", name="ck_reservations_interval"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, nullable=False, index=True)
    org_id = Column(Uuid, nullable=False, index=True)
    staff_id = Column(Uuid, nullable=False)
    customer_id = Column(Uuid, nullable=True)
    customer_name = Column(String(255), nullable=True)
    staff_name = Column(String(255), nullable=True)
    menus = Column(JSON, nullable=False, default=list)
    start_time_unix = Column(BigInteger, nullable=False)
    end_time_unix = Column(BigInteger, nullable=False)
    status = Column(String(16), nullable=False, default=ReservationStatus.PENDING)
    payment_method = Column(String(16), nullable=False, default=PaymentMethod.CASH)
    payment_status = Column(String(16), nullable=False, default=PaymentStatus.UNPAID)
    total_price = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    record_state = Column(String(16), nullable=False, default=RecordState.ACTIVE)

    cancellation_reason = Column(Text, nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)
    canceled_by = Column(Uuid, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def transition_status(self, target: str) -> None:
        ensure_transition("status", ReservationStatus.TRANSITIONS, self.status, target)
        self.status = target

    def transition_record_state(self, target: str) -> None:
        ensure_transition("record_state", RecordState.TRANSITIONS, self.record_state, target)
        self.record_state = target


class ReservationEvent(Base):
    __tablename__ = "reservation_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reservation_id = Column(
        Uuid, ForeignKey("reservations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id = Column(Uuid, nullable=False, index=True)
    event_type = Column(String, nullable=False)
    payload = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
