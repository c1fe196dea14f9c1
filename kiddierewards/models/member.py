import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from kiddierewards.database import Base


class MemberRole(str, enum.Enum):
    PARENT = "parent"
    CHILD = "child"


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (
        UniqueConstraint("family_id", "pin_hash", name="uq_members_family_pin_hash"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    family_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    avatar_key: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[MemberRole] = mapped_column(
        Enum(
            MemberRole,
            native_enum=False,
            length=20,
            values_callable=lambda roles: [r.value for r in roles],
        ),
        nullable=False,
        default=MemberRole.CHILD,
    )
    pin_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Sign-in credentials, only set for parents with an account
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    family: Mapped["Family"] = relationship(back_populates="members")  # noqa: F821
    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        back_populates="member", cascade="all, delete-orphan",
    )

    @property
    def is_parent(self) -> bool:
        return self.role == MemberRole.PARENT

    @property
    def is_child(self) -> bool:
        return self.role == MemberRole.CHILD

    def __repr__(self) -> str:
        return f"<Member(id={self.id}, display_name={self.display_name!r}, role={self.role.value!r})>"


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4,
    )
    member_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False
    )
    token_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    member: Mapped["Member"] = relationship(back_populates="refresh_tokens")

    def __repr__(self) -> str:
        return f"<RefreshToken(id={self.id}, member_id={self.member_id})>"
