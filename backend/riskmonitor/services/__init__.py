"""
Trade Risk Monitor Services

Service layer containing the risk-rule evaluation engine.
Each service has a defined interface (contract) and implementation.
"""

from riskmonitor.services.base import BaseService, ServiceError

__all__ = ["BaseService", "ServiceError"]
