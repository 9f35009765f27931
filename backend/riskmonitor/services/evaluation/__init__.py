"""
Rule Evaluation Service

Evaluates active risk rules for accounts and closed trades, records
incidents once per cooldown key and fires the rules' actions.
"""

from riskmonitor.services.evaluation.interface import (
    EvaluationRequest,
    EvaluationScope,
    RuleEvaluatorInterface,
)
from riskmonitor.services.evaluation.service import RuleEvaluatorService, get_rule_evaluator
from riskmonitor.services.evaluation.writer import IncidentWriter
from riskmonitor.services.evaluation.guard import cooldown_minutes, has_recent_incident, incident_trade_key
from riskmonitor.services.evaluation.description import generate_description
from riskmonitor.services.evaluation.scheduler import (
    PeriodicEvaluator,
    get_periodic_evaluator,
    start_periodic_evaluator,
    stop_periodic_evaluator,
    summarize,
)

__all__ = [
    "EvaluationRequest",
    "EvaluationScope",
    "RuleEvaluatorInterface",
    "RuleEvaluatorService",
    "get_rule_evaluator",
    "IncidentWriter",
    "cooldown_minutes",
    "has_recent_incident",
    "incident_trade_key",
    "generate_description",
    "PeriodicEvaluator",
    "get_periodic_evaluator",
    "start_periodic_evaluator",
    "stop_periodic_evaluator",
    "summarize",
]
