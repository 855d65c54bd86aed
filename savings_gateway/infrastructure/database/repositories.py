"""Data access layer for round-up rules"""

from typing import Optional

from sqlalchemy.orm import Session

from savings_gateway.domain.exceptions import InvalidRoundUpRule
from savings_gateway.domain.models import (
    Allocation,
    AutoAdaptive,
    FixedIncrement,
    Percentage,
    RoundUpRule,
)
from savings_gateway.infrastructure.database.models import RoundUpRuleRecord
from savings_gateway.utils.date_utils import utc_now


def rule_from_record(record: RoundUpRuleRecord) -> RoundUpRule:
    """Rebuild the tagged strategy from its storage columns"""
    if record.strategy == "fixed":
        strategy = FixedIncrement(record.increment_cents)
    elif record.strategy == "percentage":
        strategy = Percentage(record.percentage_bps)
    elif record.strategy == "auto":
        strategy = AutoAdaptive(
            min_increment_cents=record.min_increment_cents,
            max_increment_cents=record.max_increment_cents,
            analysis_window_days=record.analysis_window_days,
        )
    else:
        raise InvalidRoundUpRule(f"Unknown stored strategy: {record.strategy}")

    return RoundUpRule(
        enabled=record.is_enabled,
        strategy=strategy,
        allocation=Allocation(main_pct=record.main_pct, savings_pct=record.savings_pct),
    )


def apply_rule(record: RoundUpRuleRecord, rule: RoundUpRule) -> None:
    """Flatten a rule into storage columns; fields of other strategies are cleared"""
    record.is_enabled = rule.enabled
    record.main_pct = rule.allocation.main_pct
    record.savings_pct = rule.allocation.savings_pct
    record.increment_cents = None
    record.percentage_bps = None
    record.min_increment_cents = None
    record.max_increment_cents = None
    record.analysis_window_days = None

    strategy = rule.strategy
    if isinstance(strategy, FixedIncrement):
        record.strategy = "fixed"
        record.increment_cents = strategy.value_cents
    elif isinstance(strategy, Percentage):
        record.strategy = "percentage"
        record.percentage_bps = strategy.bps
    else:
        record.strategy = "auto"
        record.min_increment_cents = strategy.min_increment_cents
        record.max_increment_cents = strategy.max_increment_cents
        record.analysis_window_days = strategy.analysis_window_days


class RoundUpRuleRepository:
    """Repository for per-user round-up rules"""

    def __init__(self, db: Session):
        self.db = db

    def get_record(self, user_id: str) -> Optional[RoundUpRuleRecord]:
        return (
            self.db.query(RoundUpRuleRecord)
            .filter(RoundUpRuleRecord.user_id == user_id)
            .first()
        )

    def get_rule(self, user_id: str) -> Optional[RoundUpRule]:
        record = self.get_record(user_id)
        return rule_from_record(record) if record else None

    def save_rule(self, user_id: str, rule: RoundUpRule) -> RoundUpRuleRecord:
        """Create or replace the user's rule; usage counters are kept"""
        record = self.get_record(user_id)
        if record is None:
            record = RoundUpRuleRecord(
                user_id=user_id,
                total_round_ups_count=0,
                total_amount_saved_cents=0,
            )
            self.db.add(record)

        apply_rule(record, rule)
        self.db.flush()
        return record

    def record_usage(self, user_id: str, saved_cents: int) -> None:
        """Bump usage counters after a successful round-up"""
        if saved_cents <= 0:
            return
        record = self.get_record(user_id)
        if record is None:
            return
        record.total_round_ups_count += 1
        record.total_amount_saved_cents += saved_cents
        record.last_used_at = utc_now()
        self.db.flush()
