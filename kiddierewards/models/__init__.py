"""SQLAlchemy ORM models.

All models are imported here so that Alembic can discover them
via ``Base.metadata`` when generating migrations.
"""

from kiddierewards.models.family import Family  # noqa: F401
from kiddierewards.models.invitation import FamilyInvitation  # noqa: F401
from kiddierewards.models.member import Member, MemberRole, RefreshToken  # noqa: F401
from kiddierewards.models.point_entry import PointEntry, PointEntryType  # noqa: F401

__all__ = [
    "Family",
    "FamilyInvitation",
    "Member",
    "MemberRole",
    "PointEntry",
    "PointEntryType",
    "RefreshToken",
]
