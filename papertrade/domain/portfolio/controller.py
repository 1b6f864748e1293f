from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Response
from dependency_injector.wiring import inject, Provide
from pydantic import BaseModel, Field

from papertrade.application.http_results import unwrap
from papertrade.domain.portfolio.dtos.portfolio_dto import (
    CreatePortfolioRequest,
    LinkResultDTO,
    PortfolioDetailDTO,
    PortfolioDTO,
)
from papertrade.domain.portfolio.portfolio_module import PortfolioModule
from papertrade.domain.portfolio.portfolio_service import PortfolioService


router = APIRouter(prefix="/portfolios", tags=["portfolios"])


class LinkRequest(BaseModel):
    transaction_ids: List[int] = Field(default_factory=list)
    portfolio_id: Optional[int] = None
    new_portfolio: Optional[CreatePortfolioRequest] = None


class UnlinkRequest(BaseModel):
    portfolio_id: int
    transaction_ids: List[int] = Field(default_factory=list)


@router.get("", response_model=List[PortfolioDTO], summary="List portfolios")
@inject
async def list_portfolios(
    currency: Optional[str] = None,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    return await service.list_portfolios(trader_id, currency)


@router.post("", response_model=PortfolioDTO, status_code=201, summary="Create an empty portfolio")
@inject
async def create_portfolio(
    body: CreatePortfolioRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    result = await service.create_portfolio(trader_id, body.name, body.currency)
    return unwrap(result, response)


@router.get("/{portfolio_id}", response_model=PortfolioDetailDTO, summary="Portfolio with its transactions")
@inject
async def portfolio_details(
    portfolio_id: int,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    result = await service.portfolio_details(trader_id, portfolio_id)
    return unwrap(result, response)


@router.post("/link", response_model=Optional[LinkResultDTO], summary="Link transactions to a portfolio")
@inject
async def link_transactions(
    body: LinkRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    result = await service.link_transactions(
        trader_id,
        body.transaction_ids,
        portfolio_id=body.portfolio_id,
        new_portfolio=body.new_portfolio,
    )
    return unwrap(result, response)


@router.post("/unlink", response_model=Optional[PortfolioDTO], summary="Unlink transactions from a portfolio")
@inject
async def unlink_transactions(
    body: UnlinkRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    result = await service.unlink_transactions(trader_id, body.portfolio_id, body.transaction_ids)
    return unwrap(result, response)


@router.post("/{portfolio_id}/refresh", response_model=PortfolioDTO, summary="Re-mark a portfolio to market")
@inject
async def refresh_portfolio(
    portfolio_id: int,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: PortfolioService = Depends(Provide[PortfolioModule.portfolio_service]),
):
    result = await service.refresh_aggregates(trader_id, portfolio_id)
    return unwrap(result, response)
