"""
Rule Strategies

Closed set of evaluators selected by the rule's ``type``:
    DURATION    -> DurationRule
    VOLUME      -> VolumeRule
    OPEN_TRADES -> OpenTradesRule
"""

from typing import Dict, Optional

from riskmonitor.schemas.risk import RuleType
from riskmonitor.services.rules.interface import RuleCheck, RuleStrategy
from riskmonitor.services.rules.duration import DurationRule
from riskmonitor.services.rules.volume import VolumeRule
from riskmonitor.services.rules.open_trades import OpenTradesRule

RULE_HANDLERS: Dict[RuleType, RuleStrategy] = {
    RuleType.DURATION: DurationRule(),
    RuleType.VOLUME: VolumeRule(),
    RuleType.OPEN_TRADES: OpenTradesRule(),
}


def get_rule_handler(rule_type: str) -> Optional[RuleStrategy]:
    """Strategy for a rule type, or None when the type is not recognized."""
    try:
        return RULE_HANDLERS[RuleType(rule_type)]
    except ValueError:
        return None


__all__ = [
    "RuleCheck",
    "RuleStrategy",
    "DurationRule",
    "VolumeRule",
    "OpenTradesRule",
    "RULE_HANDLERS",
    "get_rule_handler",
]
