import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kiddierewards.database import Base


class Family(Base):
    __tablename__ = "families"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    members: Mapped[list["Member"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True,
    )
    point_entries: Mapped[list["PointEntry"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True,
    )
    invitations: Mapped[list["FamilyInvitation"]] = relationship(  # noqa: F821
        back_populates="family", cascade="all, delete-orphan", passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, name={self.name!r})>"
