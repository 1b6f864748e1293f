from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class IsoDataDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    country_alpha2_code: str = Field(..., min_length=2, max_length=2)
    country_name: str
    currency_alpha_code: str = Field(..., min_length=3, max_length=3)
    currency_name: str
    currency_minor_units: int = Field(default=2, ge=0, le=4)
    active: bool = False
    activated_at: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None
