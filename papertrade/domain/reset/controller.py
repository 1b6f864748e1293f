from typing import Optional

from fastapi import APIRouter, Depends, Header, Response
from dependency_injector.wiring import inject, Provide
from pydantic import BaseModel

from papertrade.application.http_results import unwrap
from papertrade.domain.reset.dtos.reset_dto import ResetSummary
from papertrade.domain.reset.reset_module import ResetModule
from papertrade.domain.reset.reset_service import ResetService


router = APIRouter(prefix="/portfolios", tags=["reset"])


class ResetRequest(BaseModel):
    reset_all: bool = False
    currency: Optional[str] = None


@router.post("/reset", response_model=Optional[ResetSummary], summary="Delete portfolios, keep the ledger")
@inject
async def reset_portfolios(
    body: ResetRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: ResetService = Depends(Provide[ResetModule.reset_service]),
):
    result = await service.reset_portfolios(trader_id, body.reset_all, body.currency)
    return unwrap(result, response)
