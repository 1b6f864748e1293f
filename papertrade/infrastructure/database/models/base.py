# papertrade/infrastructure/database/models/base.py
"""
Base Database Model

Base class for all ledger models.
"""

from datetime import datetime

from sqlalchemy.orm import declarative_base
from sqlalchemy import Column, DateTime, Numeric

Base = declarative_base()

# Amounts are carried at full precision; display scaling happens at the edge.
MONEY = Numeric(precision=28, scale=10, asdecimal=True)


class BaseModel(Base):
    """Base model with common fields."""
    __abstract__ = True

    created_at = Column(DateTime, default=datetime.now, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
    )
