"""Unit tests for invitation codes, invitation state and redemption."""

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

import pytest
from fastapi import HTTPException

from kiddierewards.models import FamilyInvitation
from kiddierewards.services.invitation_service import (
    CODE_ALPHABET,
    CODE_LENGTH,
    _generate_code,
    create_invitation,
    get_active_invitation,
    redeem_invitation,
)


class TestInvitationCodeGeneration:
    def test_alphabet_has_32_unambiguous_characters(self):
        assert len(CODE_ALPHABET) == 32
        assert len(set(CODE_ALPHABET)) == 32
        for ambiguous in "01IO":
            assert ambiguous not in CODE_ALPHABET

    def test_code_length_and_alphabet(self):
        for _ in range(50):
            code = _generate_code()
            assert len(code) == CODE_LENGTH == 10
            assert set(code) <= set(CODE_ALPHABET)

    def test_codes_are_random(self):
        codes = {_generate_code() for _ in range(20)}
        assert len(codes) > 1


def _invitation(**kwargs) -> FamilyInvitation:
    defaults = dict(
        code="ABCDEFGHJK",
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
        is_revoked=False,
        redeemed_at=None,
    )
    defaults.update(kwargs)
    return FamilyInvitation(**defaults)


class TestInvitationState:
    def test_fresh_invitation_is_active(self):
        invitation = _invitation()
        assert invitation.is_active
        assert not invitation.is_used
        assert not invitation.is_expired

    def test_revoked(self):
        invitation = _invitation(is_revoked=True)
        assert not invitation.is_active

    def test_used(self):
        invitation = _invitation(redeemed_at=datetime.now(timezone.utc))
        assert invitation.is_used
        assert not invitation.is_active

    def test_expired(self):
        invitation = _invitation(expires_at=datetime.now(timezone.utc) - timedelta(seconds=1))
        assert invitation.is_expired
        assert not invitation.is_active

    def test_naive_expiry_is_treated_as_utc(self):
        naive_past = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1)
        assert _invitation(expires_at=naive_past).is_expired


class TestRedemption:
    async def test_lookup_is_case_insensitive_and_locks(self, db_session, family_with_children, locking_statements):
        ctx = family_with_children
        invitation = await create_invitation(db_session, ctx["family"].id, ctx["parent"].id)

        found = await get_active_invitation(db_session, f"  {invitation.code.lower()} ")

        assert found is not None
        assert found.id == invitation.id
        assert len(locking_statements) == 1
        assert "FROM family_invitations" in locking_statements[0]

    async def test_code_is_single_use(self, db_session, family_with_children):
        ctx = family_with_children
        invitation = await create_invitation(db_session, ctx["family"].id, ctx["parent"].id)

        await redeem_invitation(db_session, invitation, ctx["parent"].id)

        assert invitation.is_used
        assert await get_active_invitation(db_session, invitation.code) is None
        with pytest.raises(HTTPException) as exc_info:
            await redeem_invitation(db_session, invitation, ctx["leo"].id)
        assert exc_info.value.status_code == 400
        assert invitation.redeemed_by_id == ctx["parent"].id
