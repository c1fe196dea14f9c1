import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kiddierewards.database import Base


class PointEntryType(str, enum.Enum):
    GOOD_POINT = "good_point"
    BAD_POINT = "bad_point"
    REWARD = "reward"
    BONUS = "bonus"
    RESET = "reset"


POSITIVE_TYPES = frozenset({PointEntryType.GOOD_POINT, PointEntryType.BONUS})
NEGATIVE_TYPES = frozenset({PointEntryType.BAD_POINT, PointEntryType.REWARD})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PointEntry(Base):
    __tablename__ = "point_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    # Members referenced by ledger rows can only be deactivated, not deleted
    child_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id"), nullable=False, index=True,
    )
    created_by_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id"), nullable=False,
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[PointEntryType] = mapped_column(
        Enum(
            PointEntryType,
            native_enum=False,
            length=20,
            values_callable=lambda types: [t.value for t in types],
        ),
        nullable=False,
        default=PointEntryType.GOOD_POINT,
        index=True,
    )
    reason: Mapped[str] = mapped_column(String(500), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False, index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow,
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="point_entries")  # noqa: F821
    child: Mapped["Member"] = relationship(foreign_keys=[child_id])  # noqa: F821
    created_by: Mapped["Member"] = relationship(foreign_keys=[created_by_id])  # noqa: F821

    @property
    def is_reset(self) -> bool:
        return self.type == PointEntryType.RESET

    def __repr__(self) -> str:
        return (
            f"<PointEntry(id={self.id}, child_id={self.child_id}, "
            f"points={self.points}, type={self.type.value!r})>"
        )
