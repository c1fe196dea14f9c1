"""Create the demo family: one parent (PIN 1234) and two children.

Idempotent; run after ``alembic upgrade head``:

    python scripts/seed_demo.py
"""

import asyncio
import logging
import uuid

from kiddierewards.core.pin import hash_pin
from kiddierewards.core.security import get_password_hash
from kiddierewards.database import async_session
from kiddierewards.models import Family, Member, MemberRole

logger = logging.getLogger(__name__)

FAMILY_ID = uuid.UUID("e54c6db0-4c59-4d01-8c60-2fa8d969eb8f")
PARENT_EMAIL = "owner@demo.local"
PARENT_PASSWORD = "P@ssw0rd!"

DEMO_MEMBERS = [
    # id, display name, avatar, PIN, role
    (uuid.UUID("5d4cd6cc-6d8e-4f50-9a85-a3d9a7c305d6"), "Parent Demo", "parent-star", "1234", MemberRole.PARENT),
    (uuid.UUID("5b08a2a0-7b2c-4a5c-b6a1-1a5c8b4b2ee1"), "Léo", "lion", "1111", MemberRole.CHILD),
    (uuid.UUID("5a2dceaa-2056-4c3a-94c2-5784d6e8e2d1"), "Mia", "panda", "2222", MemberRole.CHILD),
]


async def seed() -> None:
    async with async_session() as db:
        if await db.get(Family, FAMILY_ID) is not None:
            logger.info("Demo family already present, nothing to do")
            return

        db.add(Family(id=FAMILY_ID, name="Famille Demo"))
        for member_id, name, avatar, pin, role in DEMO_MEMBERS:
            member = Member(
                id=member_id,
                family_id=FAMILY_ID,
                display_name=name,
                avatar_key=avatar,
                pin_hash=hash_pin(pin),
                role=role,
            )
            if role == MemberRole.PARENT:
                member.email = PARENT_EMAIL
                member.password_hash = get_password_hash(PARENT_PASSWORD)
            db.add(member)

        await db.commit()
        logger.info("Demo family created (parent login %s)", PARENT_EMAIL)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(seed())
