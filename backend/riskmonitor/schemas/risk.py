"""
Risk Domain Vocabulary

Enumerations shared by the database models, the rule engine and the API.
Values are the exact strings stored in the database.
"""

from enum import Enum


# =============================================================================
# ACCOUNTS & TRADES
# =============================================================================


class AccountStatus(str, Enum):
    ENABLE = "enable"
    DISABLE = "disable"


class TradeType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


# =============================================================================
# RULES
# =============================================================================


class RuleType(str, Enum):
    DURATION = "DURATION"  # Minimum holding time per trade
    VOLUME = "VOLUME"  # Volume consistency against recent trades
    OPEN_TRADES = "OPEN_TRADES"  # Open trade count inside a time window


class Severity(str, Enum):
    HARD = "HARD"  # Actions fire on the first violation
    SOFT = "SOFT"  # Actions fire once incidents_before_action is reached


class ActionType(str, Enum):
    EMAIL = "EMAIL"
    SLACK = "SLACK"
    DISABLE_ACCOUNT = "DISABLE_ACCOUNT"
    DISABLE_TRADING = "DISABLE_TRADING"


# =============================================================================
# OUTCOMES
# =============================================================================


class NotificationStatus(str, Enum):
    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"


class EvaluationTrigger(str, Enum):
    MANUAL = "manual"
    EVENT = "event"
    PERIODIC = "periodic"
