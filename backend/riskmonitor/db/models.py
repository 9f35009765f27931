"""
SQLAlchemy models for the Trade Risk Monitor database.

Reference data (owned by the ingestion / admin side, read by the engine):
- Accounts (disable actions mutate their status flags)
- Trades
- Risk rules and their ordered actions

Append-only facts written by the engine:
- Incidents (one per materialized rule violation)
- Notifications (one per attempted action)
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    Numeric,
    DateTime,
    Boolean,
    Text,
    ForeignKey,
    Index,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase, relationship

from riskmonitor.schemas.risk import (
    AccountStatus,
    NotificationStatus,
    Severity,
    TradeStatus,
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class Account(Base):
    """
    Trading account identified by its login number.
    Trading is active only when both status flags are enabled.
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login = Column(BigInteger, nullable=False, unique=True, index=True)
    status = Column(String(10), nullable=False, default=AccountStatus.ENABLE.value, index=True)
    trading_status = Column(String(10), nullable=False, default=AccountStatus.ENABLE.value, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    trades = relationship("Trade", back_populates="account")
    incidents = relationship("Incident", back_populates="account")

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ENABLE.value

    @property
    def is_trading_active(self) -> bool:
        return self.trading_status == AccountStatus.ENABLE.value and self.is_active

    def disable_account(self) -> None:
        self.status = AccountStatus.DISABLE.value

    def disable_trading(self) -> None:
        self.trading_status = AccountStatus.DISABLE.value


class Trade(Base):
    """
    Executed trade. Transitions open -> closed exactly once.
    """
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)

    type = Column(String(4), nullable=False)  # BUY, SELL
    volume = Column(Numeric(10, 2), nullable=False)

    open_time = Column(DateTime, nullable=False, index=True)
    close_time = Column(DateTime, nullable=True)
    open_price = Column(Numeric(15, 5), nullable=True)
    close_price = Column(Numeric(15, 5), nullable=True)

    status = Column(String(10), nullable=False, default=TradeStatus.OPEN.value, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    account = relationship("Account", back_populates="trades")
    incidents = relationship("Incident", back_populates="trade")

    __table_args__ = (
        Index("ix_trades_account_status", "account_id", "status"),
    )

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN.value

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED.value

    @property
    def duration_seconds(self) -> Optional[int]:
        """Seconds between open and close, None while either is missing."""
        if self.open_time is None or self.close_time is None:
            return None
        return int((self.close_time - self.open_time).total_seconds())

    @property
    def profit_loss(self) -> Optional[Decimal]:
        if self.open_price is None or self.close_price is None:
            return None
        return (Decimal(self.close_price) - Decimal(self.open_price)) * Decimal(self.volume)

    def close(self, close_price, close_time: Optional[datetime] = None) -> None:
        """Close the trade. A closed trade cannot be closed again."""
        if not self.is_open:
            raise ValueError(f"Trade {self.id} is already {self.status}")
        self.close_price = Decimal(str(close_price))
        self.close_time = close_time or utcnow()
        self.status = TradeStatus.CLOSED.value


class RiskRule(Base):
    """
    Configurable risk policy.

    Parameters used per type:
    - DURATION: min_duration_seconds
    - VOLUME: min_factor, max_factor, lookback_trades
    - OPEN_TRADES: time_window_minutes, min_open_trades and/or max_open_trades
    SOFT rules also use incidents_before_action.
    """
    __tablename__ = "risk_rules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(String(255), nullable=True)

    type = Column(String(20), nullable=False, index=True)  # DURATION, VOLUME, OPEN_TRADES
    severity = Column(String(4), nullable=False, default=Severity.SOFT.value, index=True)

    # DURATION
    min_duration_seconds = Column(Integer, nullable=True)

    # VOLUME
    min_factor = Column(Numeric(5, 2), nullable=True)
    max_factor = Column(Numeric(5, 2), nullable=True)
    lookback_trades = Column(Integer, nullable=True)

    # OPEN_TRADES
    time_window_minutes = Column(Integer, nullable=True)
    min_open_trades = Column(Integer, nullable=True)
    max_open_trades = Column(Integer, nullable=True)

    # SOFT accumulation threshold
    incidents_before_action = Column(Integer, nullable=True, default=1)

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    actions = relationship(
        "RuleAction",
        back_populates="rule",
        order_by="RuleAction.order",
    )

    @property
    def is_hard_rule(self) -> bool:
        return self.severity == Severity.HARD.value

    @property
    def is_soft_rule(self) -> bool:
        return self.severity == Severity.SOFT.value


class RuleAction(Base):
    """
    Mitigating action attached to a rule, executed in ascending ``order``.
    """
    __tablename__ = "rule_actions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_id = Column(Integer, ForeignKey("risk_rules.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(String(20), nullable=False, index=True)  # EMAIL, SLACK, DISABLE_ACCOUNT, DISABLE_TRADING
    config = Column(JSON, nullable=True)  # {"recipients": [...]}, {"channel": "#risk"}
    order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utcnow)

    rule = relationship("RiskRule", back_populates="actions")

    __table_args__ = (
        Index("ix_rule_actions_rule_type", "rule_id", "action_type"),
    )


class Incident(Base):
    """
    One recorded rule violation. Immutable once created.
    trade_id is NULL for account-level evaluations and OPEN_TRADES rules.
    """
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rule_id = Column(Integer, ForeignKey("risk_rules.id", ondelete="CASCADE"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    trade_id = Column(Integer, ForeignKey("trades.id", ondelete="SET NULL"), nullable=True)

    severity = Column(String(4), nullable=False)  # Copied from the rule at creation
    description = Column(Text, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    account = relationship("Account", back_populates="incidents")
    trade = relationship("Trade", back_populates="incidents")
    notifications = relationship("Notification", back_populates="incident")

    # Duplicate-guard lookups filter on all three keys plus the time window
    __table_args__ = (
        Index("ix_incidents_rule_account_created", "rule_id", "account_id", "created_at"),
    )


class Notification(Base):
    """
    Outcome of one action executed (or attempted) for an incident.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    incident_id = Column(Integer, ForeignKey("incidents.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(String(20), nullable=False, index=True)
    status = Column(String(10), nullable=False, default=NotificationStatus.PENDING.value, index=True)
    details = Column(Text, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    executed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)

    incident = relationship("Incident", back_populates="notifications")
