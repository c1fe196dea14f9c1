"""Tests for member management and PIN checks."""

import pytest
from fastapi import HTTPException
from passlib.hash import pbkdf2_sha1

from kiddierewards.core.pin import PinVerification, verify_pin
from kiddierewards.models import MemberRole, PointEntry, PointEntryType
from kiddierewards.services.member_service import (
    check_member_pin,
    create_member,
    delete_member,
    ensure_pin_available,
    update_member,
)


class TestPinUniqueness:
    async def test_duplicate_pin_in_family_rejected(self, db_session, family_with_children):
        family_id = family_with_children["family"].id
        await create_member(db_session, family_id, "Zoe", pin="5555")

        with pytest.raises(HTTPException) as exc_info:
            await create_member(db_session, family_id, "Tom", pin="5555")
        assert exc_info.value.status_code == 409

    async def test_member_may_keep_own_pin(self, db_session, family_with_children):
        family_id = family_with_children["family"].id
        zoe = await create_member(db_session, family_id, "Zoe", pin="5555")

        await ensure_pin_available(db_session, family_id, "5555", exclude_member_id=zoe.id)

    async def test_invalid_pin_format_rejected(self, db_session, family_with_children):
        with pytest.raises(HTTPException) as exc_info:
            await create_member(db_session, family_with_children["family"].id, "Zoe", pin="12")
        assert exc_info.value.status_code == 422

    async def test_check_locks_the_family_row(self, db_session, family_with_children, locking_statements):
        await ensure_pin_available(db_session, family_with_children["family"].id, "5555")

        assert len(locking_statements) == 1
        assert "FROM families" in locking_statements[0]


class TestCreateAndUpdate:
    async def test_create_hashes_pin_and_trims(self, db_session, family_with_children):
        member = await create_member(
            db_session, family_with_children["family"].id, "  Zoe ",
            pin="5555", avatar_key=" cat ",
        )
        assert member.display_name == "Zoe"
        assert member.avatar_key == "cat"
        assert member.role == MemberRole.CHILD
        assert member.pin_hash != "5555"
        assert verify_pin(member.pin_hash, "5555") == PinVerification.MATCH

    async def test_update_changes_pin_and_fields(self, db_session, family_with_children):
        member = await create_member(db_session, family_with_children["family"].id, "Zoe", pin="5555")

        updated = await update_member(
            db_session, member, {"pin": "6666", "display_name": "Zoé", "is_active": False},
        )
        assert updated.display_name == "Zoé"
        assert updated.is_active is False
        assert verify_pin(updated.pin_hash, "6666") == PinVerification.MATCH

    async def test_blank_display_name_rejected(self, db_session, family_with_children):
        family_id = family_with_children["family"].id
        with pytest.raises(HTTPException) as exc_info:
            await create_member(db_session, family_id, "   ", pin="5555")
        assert exc_info.value.status_code == 422

        member = await create_member(db_session, family_id, "Zoe", pin="5555")
        with pytest.raises(HTTPException) as exc_info:
            await update_member(db_session, member, {"display_name": " \t "})
        assert exc_info.value.status_code == 422
        assert member.display_name == "Zoe"


class TestCheckMemberPin:
    async def test_legacy_hash_is_upgraded(self, db_session, family_with_children):
        member = await create_member(db_session, family_with_children["family"].id, "Zoe", pin="5555")
        member.pin_hash = pbkdf2_sha1.hash("5555")
        await db_session.flush()

        assert await check_member_pin(db_session, member, "5555")
        assert member.pin_hash.startswith("$pbkdf2-sha256$")
        assert verify_pin(member.pin_hash, "5555") == PinVerification.MATCH

    async def test_wrong_or_blank_pin(self, db_session, family_with_children):
        member = await create_member(db_session, family_with_children["family"].id, "Zoe", pin="5555")
        assert not await check_member_pin(db_session, member, "0000")
        assert not await check_member_pin(db_session, member, "")


class TestDeleteMember:
    async def test_delete_unreferenced(self, db_session, family_with_children):
        member = await create_member(db_session, family_with_children["family"].id, "Zoe", pin="5555")
        await delete_member(db_session, member)

    async def test_referenced_member_cannot_be_deleted(self, db_session, family_with_children):
        ctx = family_with_children
        db_session.add(PointEntry(
            family_id=ctx["family"].id,
            child_id=ctx["leo"].id,
            created_by_id=ctx["parent"].id,
            points=1,
            type=PointEntryType.GOOD_POINT,
            reason="Test",
        ))
        await db_session.flush()

        for member in (ctx["leo"], ctx["parent"]):
            with pytest.raises(HTTPException) as exc_info:
                await delete_member(db_session, member)
            assert exc_info.value.status_code == 409
