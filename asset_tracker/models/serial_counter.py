from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from asset_tracker.core.db import Base


class SerialCounter(Base):
    """
    Last serial number handed out per sequence. The row is read
    ``FOR UPDATE`` so allocation is serialised until the caller commits.
    """
    __tablename__ = "serial_counters"

    name: Mapped[str] = mapped_column(String(32), primary_key=True)
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
