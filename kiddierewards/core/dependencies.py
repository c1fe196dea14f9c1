from dataclasses import dataclass
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from kiddierewards.core.security import decode_token
from kiddierewards.database import get_db
from kiddierewards.models.family import Family
from kiddierewards.models.member import Member, MemberRole
from kiddierewards.services.pin_session_service import is_pin_session_valid

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


@dataclass(frozen=True)
class FamilyContext:
    """Who is acting, and in which family.

    Built once per request and handed explicitly to the services, so no
    handler has to re-derive the family or member from the token.
    """

    family_id: UUID
    member: Member

    @property
    def member_id(self) -> UUID:
        return self.member.id

    @property
    def role(self) -> MemberRole:
        return self.member.role


async def get_current_member(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Member:
    """Extract and validate the JWT from the Authorization header.

    Returns the Member ORM instance for the authenticated member.

    Raises:
        HTTPException 401: If the token is missing, invalid, or the member
            does not exist.
        HTTPException 403: If the member has been deactivated.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(token)
        member_id: str | None = payload.get("sub")
        token_type: str | None = payload.get("type")
        if member_id is None or token_type != "access":
            raise credentials_exception
        member_uuid = UUID(member_id)
    except (JWTError, ValueError):
        raise credentials_exception

    result = await db.execute(select(Member).where(Member.id == member_uuid))
    member = result.scalar_one_or_none()

    if member is None:
        raise credentials_exception

    if not member.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Member is deactivated",
        )

    return member


async def get_family_context(
    family_id: UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_member: Member = Depends(get_current_member),
) -> FamilyContext:
    """Build the request context for routes under ``/families/{family_id}``.

    Raises:
        HTTPException 403: If the member belongs to another family or the
            family is deactivated.
    """
    if current_member.family_id != family_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not a member of this family",
        )

    result = await db.execute(select(Family.is_active).where(Family.id == family_id))
    family_active = result.scalar_one_or_none()
    if not family_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Family is deactivated",
        )

    return FamilyContext(family_id=family_id, member=current_member)


async def require_pin_session(
    current_member: Member = Depends(get_current_member),
    x_pin_token: Annotated[str | None, Header()] = None,
) -> Member:
    """Dependency that ensures the member re-entered their PIN recently.

    Raises:
        HTTPException 403: If the ``X-Pin-Token`` header is missing, expired,
            revoked, or belongs to someone else.
    """
    if not await is_pin_session_valid(x_pin_token, current_member.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="PIN verification required",
        )
    return current_member


async def require_parent(
    context: FamilyContext = Depends(get_family_context),
    _pin_member: Member = Depends(require_pin_session),
) -> FamilyContext:
    """Dependency that ensures a PIN-verified parent of the family.

    Raises:
        HTTPException 403: If the member is not a parent.
    """
    if context.role != MemberRole.PARENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Parent role required",
        )
    return context


async def require_child(
    current_member: Member = Depends(get_current_member),
) -> Member:
    """Dependency that ensures the current member has the child role.

    Raises:
        HTTPException 403: If the member is not a child.
    """
    if current_member.role != MemberRole.CHILD:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Child role required",
        )
    return current_member
