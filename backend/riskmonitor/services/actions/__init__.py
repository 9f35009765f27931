"""
Action Executor

Mitigating actions fired for incidents (notify, disable account, disable trading).
"""

from riskmonitor.services.actions.service import ActionService, get_action_service

__all__ = [
    "ActionService",
    "get_action_service",
]
