import logging
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.domain.iso.dtos.iso_dto import IsoDataDTO
from papertrade.infrastructure.database.models.iso_data_model import IsoDataModel

logger = logging.getLogger(__name__)


class IsoDataRepository:
    """Repository for the ISO country / currency registry."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self, active: Optional[bool] = None) -> List[IsoDataDTO]:
        stmt = select(IsoDataModel).order_by(
            IsoDataModel.country_alpha2_code,
            IsoDataModel.currency_alpha_code,
        )
        if active is not None:
            stmt = stmt.where(IsoDataModel.active == active)

        res = await self.session.execute(stmt)
        return [IsoDataDTO.model_validate(m) for m in res.scalars().all()]

    async def active_currencies(self) -> Set[str]:
        stmt = (
            select(IsoDataModel.currency_alpha_code)
            .where(IsoDataModel.active.is_(True))
            .distinct()
        )
        res = await self.session.execute(stmt)
        return {code for code in res.scalars().all()}

    async def is_currency_active(self, currency: str) -> bool:
        stmt = (
            select(IsoDataModel.id)
            .where(IsoDataModel.currency_alpha_code == currency)
            .where(IsoDataModel.active.is_(True))
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none() is not None

    async def minor_units(self, currency: str) -> Optional[int]:
        stmt = (
            select(IsoDataModel.currency_minor_units)
            .where(IsoDataModel.currency_alpha_code == currency)
            .limit(1)
        )
        res = await self.session.execute(stmt)
        return res.scalar_one_or_none()

    async def get(self, iso_id: int) -> Optional[IsoDataDTO]:
        model = await self.session.get(IsoDataModel, iso_id)
        return IsoDataDTO.model_validate(model) if model else None

    async def find_pair(
        self,
        country_alpha2_code: str,
        currency_alpha_code: str,
    ) -> Optional[IsoDataDTO]:
        stmt = (
            select(IsoDataModel)
            .where(IsoDataModel.country_alpha2_code == country_alpha2_code)
            .where(IsoDataModel.currency_alpha_code == currency_alpha_code)
        )
        res = await self.session.execute(stmt)
        model = res.scalar_one_or_none()
        return IsoDataDTO.model_validate(model) if model else None

    async def create(self, iso: IsoDataDTO) -> IsoDataDTO:
        model = IsoDataModel(
            country_alpha2_code=iso.country_alpha2_code,
            country_name=iso.country_name,
            currency_alpha_code=iso.currency_alpha_code,
            currency_name=iso.currency_name,
            currency_minor_units=iso.currency_minor_units,
            active=iso.active,
            activated_at=datetime.now() if iso.active else None,
        )
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)

        logger.info(
            f"ISO pair {model.country_alpha2_code}/{model.currency_alpha_code} created"
        )
        return IsoDataDTO.model_validate(model)

    async def set_active(self, iso_id: int, active: bool) -> Optional[IsoDataDTO]:
        model = await self.session.get(IsoDataModel, iso_id, with_for_update=True)
        if model is None:
            return None

        model.active = active
        if active:
            model.activated_at = datetime.now()
        else:
            model.deactivated_at = datetime.now()

        await self.session.flush()
        return IsoDataDTO.model_validate(model)
