"""
API v1 Router

Risk evaluation and trade event endpoints.
"""

from fastapi import APIRouter

from riskmonitor.api.v1.endpoints import evaluation, trades

router = APIRouter()

# Include all endpoint routers
router.include_router(evaluation.router, prefix="/evaluate", tags=["Risk Evaluation"])
router.include_router(trades.router, prefix="/trades", tags=["Trades"])
