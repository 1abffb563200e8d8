"""
hmac_type.py — HMAC digest variants used by HOTP / TOTP.

RFC 4226 only defines HMAC-SHA1; RFC 6238 adds HMAC-SHA256 and HMAC-SHA512.
SHA1 stays the default because most authenticator apps only understand it.
"""

import hashlib
import hmac
from enum import Enum

from .errors import HmacFailure, InvalidAlgorithm


class HMACType(str, Enum):
    """Digest variant of a key; the value is the otpauth:// algorithm token."""

    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: str) -> "HMACType":
        """
        Look up a variant by name, case-insensitively ("sha1", "SHA256", ...).

        Raises:
            InvalidAlgorithm: if the name is not one of the three variants
        """
        try:
            return cls(str(name).upper())
        except ValueError:
            raise InvalidAlgorithm(f"unsupported HMAC algorithm: {name!r}") from None

    @property
    def digest_name(self) -> str:
        """hashlib name of the underlying hash ("sha1", "sha256", "sha512")."""
        return self.value.lower()

    def get_hash(self, key: bytes, message: bytes) -> bytes:
        """
        Compute HMAC(key, message) with this variant's hash.

        Raises:
            HmacFailure: if the primitive rejects the key or message
        """
        try:
            return hmac.new(key, message, getattr(hashlib, self.digest_name)).digest()
        except (TypeError, ValueError) as e:
            raise HmacFailure(f"HMAC-{self.value} failed: {e}") from e
