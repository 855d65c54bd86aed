"""SQLAlchemy ORM models for stored round-up rules"""

import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, Text, Uuid
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class RoundUpRuleRecord(Base):
    """One round-up rule per user, with usage counters"""

    __tablename__ = "round_up_rule"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True, index=True)
    is_enabled = Column(Boolean, nullable=False, default=True)
    strategy = Column(Text, nullable=False)  # fixed | percentage | auto
    increment_cents = Column(BigInteger, nullable=True)
    percentage_bps = Column(Integer, nullable=True)
    min_increment_cents = Column(BigInteger, nullable=True)
    max_increment_cents = Column(BigInteger, nullable=True)
    analysis_window_days = Column(Integer, nullable=True)
    main_pct = Column(Integer, nullable=False, default=0)
    savings_pct = Column(Integer, nullable=False, default=100)
    total_round_ups_count = Column(Integer, nullable=False, default=0)
    total_amount_saved_cents = Column(BigInteger, nullable=False, default=0)
    last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
