"""
Logging setup.

Every module logs through ``logging.getLogger(__name__)``. Action execution
traces go to the dedicated ``risk_actions`` logger so they can be routed to
their own file for auditing.
"""

import logging
import os
from typing import Optional

from riskmonitor.core.config import settings

RISK_ACTIONS_LOGGER = "risk_actions"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_action_logger() -> logging.Logger:
    """Logger for the human-auditable action trail."""
    return logging.getLogger(RISK_ACTIONS_LOGGER)


def setup_logging(level: Optional[str] = None, actions_log_path: Optional[str] = None) -> None:
    """
    Configure root logging and the risk action channel.
    Called once on application startup.
    """
    level = (level or settings.log_level).upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)

    action_logger = get_action_logger()
    action_logger.setLevel(level)

    path = actions_log_path or settings.risk_actions_log_path
    if path:
        path = os.path.abspath(path)
    if path and not any(
        isinstance(h, logging.FileHandler) and h.baseFilename == path
        for h in action_logger.handlers
    ):
        handler = logging.FileHandler(path, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        action_logger.addHandler(handler)
