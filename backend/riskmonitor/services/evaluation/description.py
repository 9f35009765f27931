"""
Incident description generation.

Turns a strategy's violation evidence into a human-readable sentence.
Degrades to a generic message on missing or malformed evidence; never raises.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from riskmonitor.db.models import RiskRule
from riskmonitor.schemas.risk import RuleType

logger = logging.getLogger(__name__)


def _fmt(value: Any) -> str:
    if isinstance(value, Decimal):
        return f"{value.quantize(Decimal('0.01'))}"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def generate_description(rule: RiskRule, evidence: Optional[Dict[str, Any]]) -> str:
    """Describe a violation of ``rule`` from its evidence."""
    try:
        if not evidence:
            return f"Rule violated: {rule.name} (type: {rule.type})"

        if rule.type == RuleType.DURATION.value:
            duration = evidence.get("duration_seconds", "unknown")
            minimum = evidence.get("min_duration_seconds", rule.min_duration_seconds)
            if minimum is None:
                minimum = "not configured"
            return f"Trade closed in {duration}s (minimum required: {minimum}s)"

        if rule.type == RuleType.VOLUME.value:
            volume = evidence.get("current_volume", "unknown")
            low = evidence.get("min_expected", "N/A")
            high = evidence.get("max_expected", "N/A")
            return f"Volume {_fmt(volume)} out of range [{_fmt(low)}, {_fmt(high)}]"

        if rule.type == RuleType.OPEN_TRADES.value:
            count = evidence["current_count"]
            window = evidence.get("time_window_minutes", rule.time_window_minutes)
            max_allowed = evidence.get("max_allowed", rule.max_open_trades)
            min_allowed = evidence.get("min_allowed", rule.min_open_trades)

            if max_allowed is not None and count > max_allowed:
                return (
                    f"Account has {count} open trades in the last {window} minutes "
                    f"(maximum allowed: {max_allowed})"
                )
            if min_allowed is not None and count < min_allowed:
                return (
                    f"Account has {count} open trades in the last {window} minutes "
                    f"(minimum required: {min_allowed})"
                )
            return f"Open trades rule violated: {count} trades"

        return f"Rule violated: {rule.name}"

    except Exception as e:
        logger.error(
            f"Error generating description for rule {rule.id}: {e}",
            extra={"rule_id": rule.id, "rule_type": rule.type, "violation_data": evidence},
        )
        return f"Violation detected - {rule.name}"
