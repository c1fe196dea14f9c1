"""PIN hashing and verification.

PINs are short numeric secrets, so they are stored as salted, iterated
PBKDF2 hashes. The parameters live inside each stored hash, which lets
verification report hashes produced with weaker settings so callers can
rehash them after a successful match.
"""

import enum
import re

from passlib.context import CryptContext

from kiddierewards.config import settings

PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 10
PIN_PATTERN = rf"^[0-9]{{{PIN_MIN_LENGTH},{PIN_MAX_LENGTH}}}$"

_PIN_RE = re.compile(PIN_PATTERN)

pin_context = CryptContext(
    schemes=["pbkdf2_sha256", "pbkdf2_sha1"],
    deprecated=["pbkdf2_sha1"],
    pbkdf2_sha256__default_rounds=settings.PIN_HASH_ROUNDS,
    pbkdf2_sha256__min_rounds=settings.PIN_HASH_MIN_ROUNDS,
)


class PinVerification(str, enum.Enum):
    MATCH = "match"
    MATCH_NEEDS_REHASH = "match_needs_rehash"
    NO_MATCH = "no_match"

    @property
    def matched(self) -> bool:
        return self is not PinVerification.NO_MATCH


def _require_text(value: str, name: str) -> None:
    if value is None or not value.strip():
        raise ValueError(f"{name} must not be empty")


def is_valid_pin(pin: str) -> bool:
    """Return True for 4 to 10 ASCII digits."""
    return bool(pin) and _PIN_RE.fullmatch(pin) is not None


def hash_pin(pin: str) -> str:
    """Hash a PIN with a fresh salt. Raises ValueError on blank input."""
    _require_text(pin, "pin")
    return pin_context.hash(pin)


def verify_pin(pin_hash: str, pin: str) -> PinVerification:
    """Check ``pin`` against a stored hash.

    Never raises on a mismatch; raises ValueError only when either
    argument is blank.
    """
    _require_text(pin_hash, "pin_hash")
    _require_text(pin, "pin")

    if pin_context.identify(pin_hash, required=False) is None:
        return PinVerification.NO_MATCH

    if not pin_context.verify(pin, pin_hash):
        return PinVerification.NO_MATCH

    if pin_context.needs_update(pin_hash):
        return PinVerification.MATCH_NEEDS_REHASH
    return PinVerification.MATCH
