"""SQLAlchemy ORM models for accounts, obligations, schedules and ledger entries"""

import uuid
from sqlalchemy import (
    Column,
    String,
    Boolean,
    DateTime,
    Date,
    Integer,
    Numeric,
    ForeignKey,
    Text,
    JSON,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(14, 2, asdecimal=True)


class AccountRecord(Base):
    """Debit or revolving-credit account"""

    __tablename__ = "account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    kind = Column(String(16), nullable=False, default="debit")
    opening_balance = Column(MONEY, nullable=False, default=0)
    billing_anchor_day = Column(Integer, nullable=True)
    credit_limit = Column(MONEY, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ObligationRecord(Base):
    """Fixed biller or installment; `kind` selects which optional columns apply"""

    __tablename__ = "obligation"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    kind = Column(String(16), nullable=False)
    name = Column(Text, nullable=False)
    nominal_amount = Column(MONEY, nullable=False)
    due_day = Column(Integer, nullable=False)
    activation_period = Column(String(7), nullable=False)  # YYYY-MM
    deactivation_period = Column(String(7), nullable=True)
    term_months = Column(Integer, nullable=True)
    linked_account_id = Column(Uuid, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    # Embedded schedule array from before the normalized table; emptied by migration
    legacy_schedules = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    schedules = relationship("ScheduleRecord", back_populates="obligation", cascade="all, delete-orphan")


class ScheduleRecord(Base):
    """Expected amount for one obligation in one month; no payment status column"""

    __tablename__ = "payment_schedule"
    __table_args__ = (UniqueConstraint("obligation_id", "period", name="uq_schedule_obligation_period"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    obligation_id = Column(Uuid, ForeignKey("obligation.id", ondelete="CASCADE"), nullable=False, index=True)
    obligation_kind = Column(String(16), nullable=False)
    period = Column(String(7), nullable=False)  # YYYY-MM
    expected_amount = Column(MONEY, nullable=False)
    expected_source = Column(String(16), nullable=False, default="nominal")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    obligation = relationship("ObligationRecord", back_populates="schedules")


class LedgerEntryRecord(Base):
    """Signed monetary movement; rows are inserted and deleted, never updated"""

    __tablename__ = "ledger_entry"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid, ForeignKey("account.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(MONEY, nullable=False)
    entry_date = Column(Date, nullable=False)
    kind = Column(String(16), nullable=False, default="payment")
    counter_account_id = Column(Uuid, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    schedule_id = Column(Uuid, ForeignKey("payment_schedule.id", ondelete="SET NULL"), nullable=True, index=True)
    obligation_id = Column(Uuid, nullable=True)
    related_entry_id = Column(Uuid, nullable=True, index=True)
    installment_linked = Column(Boolean, nullable=False, default=False)
    description = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
