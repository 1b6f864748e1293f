from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Response
from dependency_injector.wiring import inject, Provide
from pydantic import BaseModel, Field

from papertrade.application.http_results import unwrap
from papertrade.commons.enums.trading_enums import TradingDeed
from papertrade.domain.trading.dtos.position_dto import OutstandingPositionDTO
from papertrade.domain.trading.dtos.transaction_dto import (
    CostEstimate,
    TradeReceipt,
    TradingTransactionDTO,
)
from papertrade.domain.trading.positions import PositionTracker
from papertrade.domain.trading.trading_module import TradingModule
from papertrade.domain.trading.trading_service import TradingService


router = APIRouter(prefix="/trading", tags=["trading"])


class OrderRequest(BaseModel):
    symbol: str
    quantity: int


class EstimateRequest(OrderRequest):
    deed: TradingDeed


class SellRequest(OrderRequest):
    auto_transfer_to_bank: bool = False
    bank_account_id: Optional[int] = Field(default=None, ge=0)


@router.post("/estimate", response_model=CostEstimate, summary="Estimate the cost of an order")
@inject
async def estimate(
    body: EstimateRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: TradingService = Depends(Provide[TradingModule.trading_service]),
):
    result = await service.preview_cost(trader_id, body.symbol, body.deed, body.quantity)
    return unwrap(result, response)


@router.post("/buy", response_model=TradeReceipt, status_code=201, summary="Buy shares")
@inject
async def buy(
    body: OrderRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: TradingService = Depends(Provide[TradingModule.trading_service]),
):
    result = await service.buy(trader_id, body.symbol, body.quantity)
    return unwrap(result, response)


@router.post("/sell", response_model=TradeReceipt, status_code=201, summary="Sell shares")
@inject
async def sell(
    body: SellRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: TradingService = Depends(Provide[TradingModule.trading_service]),
):
    result = await service.sell(
        trader_id,
        body.symbol,
        body.quantity,
        auto_transfer_to_bank=body.auto_transfer_to_bank,
        bank_account_id=body.bank_account_id,
    )
    return unwrap(result, response)


@router.get("/transactions", response_model=List[TradingTransactionDTO], summary="Trading history")
@inject
async def transactions(
    currency: Optional[str] = None,
    unlinked: bool = False,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: TradingService = Depends(Provide[TradingModule.trading_service]),
):
    return await service.transactions(trader_id, currency, unlinked=unlinked)


@router.get("/outstanding", response_model=List[OutstandingPositionDTO], summary="Symbols still held")
@inject
async def outstanding_positions(
    currency: Optional[str] = None,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    tracker: PositionTracker = Depends(Provide[TradingModule.position_tracker]),
):
    return await tracker.outstanding_positions(trader_id, currency)


@router.get("/outstanding/{symbol}", summary="Outstanding quantity of one symbol")
@inject
async def outstanding_quantity(
    symbol: str,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    tracker: PositionTracker = Depends(Provide[TradingModule.position_tracker]),
) -> dict:
    symbol = symbol.strip().upper()
    quantity = await tracker.outstanding_quantity(trader_id, symbol)
    return {"symbol": symbol, "outstanding_quantity": quantity}
