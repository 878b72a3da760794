import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_tracker.core.clock import utcnow
from asset_tracker.core.db import Base
from asset_tracker.models.enums import Role, check_in

if TYPE_CHECKING:
    from .military_base import MilitaryBase


class User(Base):
    """
    Authenticated actor.

    A base_commander (and a plain user) is scoped to ``assigned_base_id``;
    admin and logistics_officer see every base.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(check_in("role", Role), name="user_role_check"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    fullname: Mapped[str] = mapped_column(String(120), nullable=False)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)

    role: Mapped[str] = mapped_column(String(32), nullable=False, default=Role.USER.value)
    assigned_base_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("bases.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    assigned_base: Mapped[Optional["MilitaryBase"]] = relationship(
        "MilitaryBase", foreign_keys=[assigned_base_id]
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
