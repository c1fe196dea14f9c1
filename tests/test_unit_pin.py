"""Unit tests for core/pin.py (no database required)."""

import os

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from passlib.hash import pbkdf2_sha1, pbkdf2_sha256

from kiddierewards.core.pin import (
    PinVerification,
    hash_pin,
    is_valid_pin,
    verify_pin,
)


class TestPinFormat:
    @pytest.mark.parametrize("pin", ["1234", "0000", "1234567890"])
    def test_valid(self, pin):
        assert is_valid_pin(pin)

    @pytest.mark.parametrize("pin", ["", "123", "12345678901", "12a4", " 1234", "١٢٣٤"])
    def test_invalid(self, pin):
        assert not is_valid_pin(pin)


class TestHashPin:
    def test_hash_is_not_the_pin(self):
        hashed = hash_pin("1234")
        assert hashed != "1234"
        assert hashed.startswith("$pbkdf2-sha256$")

    def test_fresh_salt_per_call(self):
        assert hash_pin("1234") != hash_pin("1234")

    @pytest.mark.parametrize("pin", ["", "   "])
    def test_blank_pin_rejected(self, pin):
        with pytest.raises(ValueError):
            hash_pin(pin)


class TestVerifyPin:
    def test_match(self):
        assert verify_pin(hash_pin("1234"), "1234") == PinVerification.MATCH

    def test_wrong_pin(self):
        assert verify_pin(hash_pin("1234"), "4321") == PinVerification.NO_MATCH

    def test_legacy_scheme_needs_rehash(self):
        legacy = pbkdf2_sha1.hash("1234")
        assert verify_pin(legacy, "1234") == PinVerification.MATCH_NEEDS_REHASH

    def test_weak_rounds_need_rehash(self):
        weak = pbkdf2_sha256.using(rounds=1000).hash("1234")
        result = verify_pin(weak, "1234")
        assert result == PinVerification.MATCH_NEEDS_REHASH
        assert result.matched

    def test_legacy_hash_wrong_pin(self):
        legacy = pbkdf2_sha1.hash("1234")
        assert verify_pin(legacy, "9999") == PinVerification.NO_MATCH

    def test_unrecognised_hash_is_no_match(self):
        assert verify_pin("not-a-hash", "1234") == PinVerification.NO_MATCH

    @pytest.mark.parametrize("pin_hash,pin", [("", "1234"), ("  ", "1234"), ("$x$", ""), ("$x$", " ")])
    def test_blank_input_rejected(self, pin_hash, pin):
        with pytest.raises(ValueError):
            verify_pin(pin_hash, pin)

    def test_no_match_is_not_matched(self):
        assert not PinVerification.NO_MATCH.matched
        assert PinVerification.MATCH.matched
