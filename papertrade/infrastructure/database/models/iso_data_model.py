"""
ISO Data Database Model

Country / currency pairs an administrator enabled for trading.
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    BigInteger,
    Boolean,
    DateTime,
    UniqueConstraint,
)

from papertrade.infrastructure.database.models.base import BaseModel


class IsoDataModel(BaseModel):
    __tablename__ = "iso_data"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    country_alpha2_code = Column(String(2), nullable=False)
    country_name = Column(String, nullable=False)
    currency_alpha_code = Column(String(3), nullable=False, index=True)
    currency_name = Column(String, nullable=False)
    currency_minor_units = Column(Integer, nullable=False, default=2)
    active = Column(Boolean, nullable=False, default=False)
    activated_at = Column(DateTime, nullable=True)
    deactivated_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "country_alpha2_code",
            "currency_alpha_code",
            name="uq_iso_country_currency",
        ),
    )
