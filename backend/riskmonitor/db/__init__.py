"""
Database module for the Trade Risk Monitor.

Provides SQLite database connection and models.
"""

from riskmonitor.db.database import (
    get_db,
    init_db,
    create_engine,
    create_session_factory,
    AsyncSessionLocal,
    WriteSessionLocal,
)
from riskmonitor.db.models import (
    Base,
    Account,
    Trade,
    RiskRule,
    RuleAction,
    Incident,
    Notification,
    utcnow,
)

__all__ = [
    "get_db",
    "init_db",
    "create_engine",
    "create_session_factory",
    "AsyncSessionLocal",
    "WriteSessionLocal",
    "Base",
    "Account",
    "Trade",
    "RiskRule",
    "RuleAction",
    "Incident",
    "Notification",
    "utcnow",
]
