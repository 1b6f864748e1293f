from typing import List, Optional

from fastapi import APIRouter, Depends, Response
from dependency_injector.wiring import inject, Provide

from papertrade.application.http_results import unwrap
from papertrade.domain.iso.dtos.iso_dto import IsoDataDTO
from papertrade.domain.iso.iso_module import IsoModule
from papertrade.domain.iso.iso_service import IsoService


router = APIRouter(prefix="/iso", tags=["iso"])


@router.get("", response_model=List[IsoDataDTO], summary="List ISO country / currency pairs")
@inject
async def list_iso_data(
    active: Optional[bool] = None,
    service: IsoService = Depends(Provide[IsoModule.iso_service]),
):
    return await service.list_iso_data(active)


@router.get("/currencies", summary="Currencies enabled for trading")
@inject
async def active_currencies(
    service: IsoService = Depends(Provide[IsoModule.iso_service]),
) -> List[str]:
    return sorted(await service.active_currencies())


@router.post("", response_model=IsoDataDTO, status_code=201, summary="Add an ISO pair")
@inject
async def create_iso_data(
    body: IsoDataDTO,
    response: Response,
    service: IsoService = Depends(Provide[IsoModule.iso_service]),
):
    result = await service.create(body)
    return unwrap(result, response)


@router.post("/{iso_id}/activate", response_model=Optional[IsoDataDTO], summary="Enable a pair for trading")
@inject
async def activate(
    iso_id: int,
    response: Response,
    service: IsoService = Depends(Provide[IsoModule.iso_service]),
):
    return unwrap(await service.activate(iso_id), response)


@router.post("/{iso_id}/deactivate", response_model=Optional[IsoDataDTO], summary="Disable a pair")
@inject
async def deactivate(
    iso_id: int,
    response: Response,
    service: IsoService = Depends(Provide[IsoModule.iso_service]),
):
    return unwrap(await service.deactivate(iso_id), response)
