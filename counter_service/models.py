"""
Storage for the claim counter. One row per named counter; the deployed
service only ever touches the row named by ``settings.counter_name``.
No other service reads or writes this table.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from counter_service.database import Base


class ClaimCounterState(Base):
    __tablename__ = "claim_counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    # Last issued claim number (the baseline until the first allocation)
    value: Mapped[int] = mapped_column(BigInteger, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
