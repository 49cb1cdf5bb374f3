"""SQLAlchemy ORM models for verification results"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Float, Integer, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class CategorizedTransactionRecord(Base):
    """Bank transaction with its detected category, one row per provider transaction"""

    __tablename__ = "categorized_transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(Text, nullable=False, index=True)
    account_index = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    transaction_date = Column(Date, nullable=False)
    date_estimated = Column(Boolean, nullable=False, default=False)
    credit = Column(Float, nullable=True)
    debit = Column(Float, nullable=True)
    balance = Column(Float, nullable=True)
    detected_category = Column(Text, nullable=False, index=True)
    confidence = Column(Float, nullable=False)
    account_type = Column(Text, nullable=True)
    account_description = Column(Text, nullable=True)
    account_number = Column(Text, nullable=True)
    institution = Column(Text, nullable=True)
    original_category = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class IBVSummaryRecord(Base):
    """Latest IBV summary computed for an application"""

    __tablename__ = "ibv_summaries"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_id = Column(Text, nullable=False, index=True)
    request_id = Column(Text, nullable=False)
    institution_name = Column(Text, nullable=True)
    summary = Column(JSON, nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )
