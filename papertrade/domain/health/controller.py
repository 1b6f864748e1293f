from fastapi import APIRouter, Depends, Response, status
from dependency_injector.wiring import inject, Provide
from papertrade.domain.health.service import HealthService
from papertrade.domain.health.module import HealthModule


router = APIRouter(prefix="/health", tags=["health"])


@router.get("", summary="Health check endpoint")
@inject
async def health_check(response: Response,
                       service: HealthService = Depends(Provide[HealthModule.service]),
                       ) -> dict:
    report = await service.report()
    if not report["database"]:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return report
