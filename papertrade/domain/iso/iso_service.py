import logging
from typing import List, Optional, Set

from sqlalchemy.exc import IntegrityError

from papertrade.commons.results import (
    Conflict,
    NoChange,
    NotFound,
    Ok,
    OperationResult,
)
from papertrade.domain.iso.dtos.iso_dto import IsoDataDTO
from papertrade.infrastructure.database.client import PostgresClient
from papertrade.infrastructure.database.repositories.iso_data_repository import IsoDataRepository

logger = logging.getLogger(__name__)

# Inserted on startup in development so the static quote catalog is tradeable
DEFAULT_ISO_DATA: List[IsoDataDTO] = [
    IsoDataDTO(country_alpha2_code="US", country_name="United States of America",
               currency_alpha_code="USD", currency_name="US Dollar", currency_minor_units=2, active=True),
    IsoDataDTO(country_alpha2_code="HK", country_name="Hong Kong",
               currency_alpha_code="HKD", currency_name="Hong Kong Dollar", currency_minor_units=2, active=True),
    IsoDataDTO(country_alpha2_code="GB", country_name="United Kingdom",
               currency_alpha_code="GBP", currency_name="Pound Sterling", currency_minor_units=2, active=True),
    IsoDataDTO(country_alpha2_code="DE", country_name="Germany",
               currency_alpha_code="EUR", currency_name="Euro", currency_minor_units=2, active=True),
    IsoDataDTO(country_alpha2_code="JP", country_name="Japan",
               currency_alpha_code="JPY", currency_name="Yen", currency_minor_units=0, active=True),
]


class IsoService:
    """
    Registry of the country / currency pairs an administrator enabled for
    trading. A currency is active when any of its pairs is.
    """

    def __init__(self, db_client: PostgresClient):
        self.db_client = db_client

    async def list_iso_data(self, active: Optional[bool] = None) -> List[IsoDataDTO]:
        async with self.db_client.get_session() as session:
            return await IsoDataRepository(session).list_all(active)

    async def active_currencies(self) -> Set[str]:
        async with self.db_client.get_session() as session:
            return await IsoDataRepository(session).active_currencies()

    async def is_active(self, currency: str) -> bool:
        async with self.db_client.get_session() as session:
            return await IsoDataRepository(session).is_currency_active(currency.upper())

    async def minor_units(self, currency: str) -> Optional[int]:
        async with self.db_client.get_session() as session:
            return await IsoDataRepository(session).minor_units(currency.upper())

    async def create(self, iso: IsoDataDTO) -> OperationResult[IsoDataDTO]:
        iso = iso.model_copy(
            update={
                "country_alpha2_code": iso.country_alpha2_code.upper(),
                "currency_alpha_code": iso.currency_alpha_code.upper(),
            }
        )
        pair = f"{iso.country_alpha2_code}/{iso.currency_alpha_code}"

        try:
            async with self.db_client.transaction() as session:
                repo = IsoDataRepository(session)
                if await repo.find_pair(iso.country_alpha2_code, iso.currency_alpha_code):
                    return Conflict(f"ISO pair {pair} already exists")
                created = await repo.create(iso)
        except IntegrityError:
            # lost a race with a concurrent insert of the same pair
            logger.warning(f"ISO pair {pair} inserted concurrently")
            return Conflict(f"ISO pair {pair} already exists")

        return Ok(created)

    async def activate(self, iso_id: int) -> OperationResult[IsoDataDTO]:
        return await self._set_active(iso_id, True)

    async def deactivate(self, iso_id: int) -> OperationResult[IsoDataDTO]:
        return await self._set_active(iso_id, False)

    async def _set_active(self, iso_id: int, active: bool) -> OperationResult[IsoDataDTO]:
        async with self.db_client.transaction() as session:
            repo = IsoDataRepository(session)
            current = await repo.get(iso_id)
            if current is None:
                return NotFound(f"ISO data {iso_id} not found")
            if current.active == active:
                return NoChange(current)

            updated = await repo.set_active(iso_id, active)

        logger.info(
            f"ISO pair {updated.country_alpha2_code}/{updated.currency_alpha_code} "
            f"{'activated' if active else 'deactivated'}"
        )
        return Ok(updated)

    async def seed_defaults(self) -> int:
        """Insert DEFAULT_ISO_DATA pairs that are missing. Returns how many were added."""
        added = 0
        async with self.db_client.transaction() as session:
            repo = IsoDataRepository(session)
            for iso in DEFAULT_ISO_DATA:
                if await repo.find_pair(iso.country_alpha2_code, iso.currency_alpha_code):
                    continue
                await repo.create(iso)
                added += 1

        if added:
            logger.info(f"🌍 Seeded {added} ISO currency pairs")
        return added
