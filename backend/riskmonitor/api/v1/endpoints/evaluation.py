"""
Risk Evaluation API Endpoints

Manual and event-driven triggers for the rule evaluation engine.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.db.database import get_db, get_trade
from riskmonitor.db.models import Account, utcnow
from riskmonitor.schemas.evaluation import (
    AccountEvaluationResponse,
    BulkEvaluationResponse,
    EvaluateRequest,
    TradeEvaluationResponse,
)
from riskmonitor.schemas.risk import EvaluationTrigger
from riskmonitor.services.base import NotFoundError
from riskmonitor.services.evaluation import RuleEvaluatorService, get_rule_evaluator, summarize

router = APIRouter()


def _trigger(request: Optional[EvaluateRequest]) -> EvaluationTrigger:
    return request.trigger if request else EvaluationTrigger.MANUAL


@router.post("/account/{account_id}", response_model=AccountEvaluationResponse)
async def evaluate_account(
    account_id: int,
    request: Optional[EvaluateRequest] = None,
    db: AsyncSession = Depends(get_db),
    evaluator: RuleEvaluatorService = Depends(get_rule_evaluator),
):
    """
    Evaluate all active rules for an account.

    Creates incidents and fires actions for violated rules.
    """
    account = await db.get(Account, account_id)
    if account is None:
        raise HTTPException(status_code=404, detail=f"Account {account_id} not found")

    try:
        results = await evaluator.evaluate_account(account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return AccountEvaluationResponse(
        account_id=account.id,
        login=account.login,
        total_rules_evaluated=len(results),
        violations_found=sum(1 for r in results if r.violated),
        results=results,
        trigger=_trigger(request),
        evaluated_at=utcnow(),
    )


@router.post("/trade/{trade_id}", response_model=TradeEvaluationResponse)
async def evaluate_trade(
    trade_id: int,
    request: Optional[EvaluateRequest] = None,
    db: AsyncSession = Depends(get_db),
    evaluator: RuleEvaluatorService = Depends(get_rule_evaluator),
):
    """
    Evaluate all active rules for a trade.

    Open trades are not evaluated and yield an empty result list.
    """
    trade = await get_trade(db, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found")

    try:
        results = await evaluator.evaluate_trade(trade_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    return TradeEvaluationResponse(
        trade_id=trade.id,
        account_id=trade.account_id,
        violations_found=sum(1 for r in results if r.violated),
        results=results,
        trigger=_trigger(request),
        evaluated_at=utcnow(),
    )


@router.post("/all-active", response_model=BulkEvaluationResponse)
async def evaluate_all_active(
    request: Optional[EvaluateRequest] = None,
    evaluator: RuleEvaluatorService = Depends(get_rule_evaluator),
):
    """
    Evaluate every account whose status and trading status are enabled.

    Accounts already being evaluated by another run are skipped.
    """
    results = await evaluator.evaluate_all_active_accounts()
    summary = summarize(results)

    return BulkEvaluationResponse(
        total_accounts_evaluated=summary["total_accounts"],
        total_violations_found=summary["violations_found"],
        results=results,
        trigger=_trigger(request),
        evaluated_at=utcnow(),
    )
