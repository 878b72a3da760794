import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base


class MilitaryBase(Base):
    """
    A base holding inventory. Commanders are linked from the user side
    (``User.assigned_base_id``).
    """
    __tablename__ = "bases"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True, nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False, default="unknown")
    contact_info: Mapped[str] = mapped_column(String(200), nullable=False, default="No contact info provided")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
