"""
Trade API Endpoints

Closing a trade is the event that triggers trade-level rule evaluation.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from riskmonitor.db.database import close_trade, get_db, get_trade
from riskmonitor.db.models import Trade
from riskmonitor.schemas.evaluation import CloseTradeRequest, CloseTradeResponse, TradeOut
from riskmonitor.services.base import TradeAlreadyClosedError
from riskmonitor.services.evaluation import RuleEvaluatorService, get_rule_evaluator

router = APIRouter()


def _to_float(value):
    return float(value) if value is not None else None


def trade_out(trade: Trade) -> TradeOut:
    return TradeOut(
        id=trade.id,
        account_id=trade.account_id,
        type=trade.type,
        volume=float(trade.volume),
        open_time=trade.open_time,
        close_time=trade.close_time,
        open_price=_to_float(trade.open_price),
        close_price=_to_float(trade.close_price),
        status=trade.status,
        duration_seconds=trade.duration_seconds,
        profit_loss=_to_float(trade.profit_loss),
    )


@router.post("/{trade_id}/close", response_model=CloseTradeResponse)
async def close(
    trade_id: int,
    request: CloseTradeRequest,
    db: AsyncSession = Depends(get_db),
    evaluator: RuleEvaluatorService = Depends(get_rule_evaluator),
):
    """
    Close an open trade and evaluate it.

    The close is committed before evaluation so the evaluator sees the
    closed trade.
    """
    trade = await get_trade(db, trade_id)
    if trade is None:
        raise HTTPException(status_code=404, detail=f"Trade {trade_id} not found")

    try:
        await close_trade(db, trade, request.close_price)
    except TradeAlreadyClosedError as e:
        raise HTTPException(status_code=409, detail=e.message)
    await db.commit()

    evaluation = await evaluator.evaluate_trade(trade_id)

    return CloseTradeResponse(trade=trade_out(trade), evaluation=evaluation)
