import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kiddierewards.database import Base


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class FamilyInvitation(Base):
    __tablename__ = "family_invitations"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="SET NULL"), nullable=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    is_revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    redeemed_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="SET NULL"), nullable=True,
    )
    redeemed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(),
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="invitations")  # noqa: F821
    creator: Mapped["Member | None"] = relationship(foreign_keys=[created_by_id])  # noqa: F821
    redeemer: Mapped["Member | None"] = relationship(foreign_keys=[redeemed_by_id])  # noqa: F821

    @property
    def is_used(self) -> bool:
        return self.redeemed_at is not None

    @property
    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > _as_utc(self.expires_at)

    @property
    def is_active(self) -> bool:
        return not (self.is_revoked or self.is_used or self.is_expired)

    def __repr__(self) -> str:
        return f"<FamilyInvitation(id={self.id}, code={self.code!r})>"
