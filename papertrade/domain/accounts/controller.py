from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Response
from dependency_injector.wiring import inject, Provide
from pydantic import BaseModel, Field

from papertrade.application.http_results import unwrap
from papertrade.domain.accounts.account_service import AccountService
from papertrade.domain.accounts.accounts_module import AccountsModule
from papertrade.domain.accounts.dtos.account_dto import AccountBalanceDTO, BankAccountDTO


router = APIRouter(prefix="/accounts", tags=["accounts"])


class DepositRequest(BaseModel):
    currency: str = Field(..., min_length=3, max_length=3)
    amount: Decimal


class BankAccountRequest(BaseModel):
    currency: str = Field(..., min_length=3, max_length=3)
    bank_name: str = Field(..., min_length=1)
    bank_account_number: str = Field(..., min_length=1)


@router.get("/balances", response_model=List[AccountBalanceDTO], summary="Balances per currency")
@inject
async def balances(
    currency: Optional[str] = None,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: AccountService = Depends(Provide[AccountsModule.account_service]),
):
    return [balance.for_display() for balance in await service.balances(trader_id, currency)]


@router.post("/deposit", response_model=AccountBalanceDTO, summary="Deposit virtual funds")
@inject
async def deposit(
    body: DepositRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: AccountService = Depends(Provide[AccountsModule.account_service]),
):
    result = await service.deposit(trader_id, body.currency, body.amount)
    return unwrap(result, response)


@router.post("/bank-accounts", response_model=BankAccountDTO, status_code=201, summary="Register a bank account")
@inject
async def register_bank_account(
    body: BankAccountRequest,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: AccountService = Depends(Provide[AccountsModule.account_service]),
):
    result = await service.register_bank_account(
        trader_id, body.currency, body.bank_name, body.bank_account_number
    )
    return unwrap(result, response)


@router.delete("/bank-accounts/{bank_account_id}", response_model=BankAccountDTO, summary="Mark a bank account not in use")
@inject
async def retire_bank_account(
    bank_account_id: int,
    response: Response,
    trader_id: str = Header(..., alias="X-Trader-Id"),
    service: AccountService = Depends(Provide[AccountsModule.account_service]),
):
    result = await service.retire_bank_account(trader_id, bank_account_id)
    return unwrap(result, response)
