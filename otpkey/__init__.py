"""
otpkey package
==============

HOTP / TOTP one-time codes (RFC 4226 & RFC 6238) with otpauth:// URI and
QR code import / export.

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP (HMAC-based One-Time Password):
  code = Truncate(HMAC(key=secret, msg=counter)) mod 10^digits
  → the counter only moves when the owner calls advance_counter().

- TOTP (Time-based One-Time Password):
  HOTP with counter = floor((timestamp - T0) / timestep)
  → default timestep = 30 seconds, 6 digits, HMAC-SHA1.

- Dynamic Truncation:
  take 4 bytes of the HMAC at offset (last byte & 0x0F), clear the top bit.

- Digests: SHA1 (default, what most authenticator apps expect),
  SHA256, SHA512.

──────────────────────────────────────────────
Quick usage
──────────────────────────────────────────────
>>> from otpkey import otpauth_from_qr_code, otpauth_from_uri
>>> key = otpauth_from_uri(
...     "otpauth://totp/ACME%20Co:john.doe@email.com"
...     "?secret=HXDMVJECJJWSRB3HWIZR4IFUGFTMXBOZ&issuer=ACME%20Co"
...     "&algorithm=SHA256&digits=7&period=60"
... )
>>> key.get_name(), key.issuer
('john.doe@email.com', 'ACME Co')
>>> code = key.get_code()
>>> image = key.to_qr_code("acme.png")      # 2048x2048 PNG
>>> otpauth_from_qr_code("acme.png") == key
True
"""

import logging

from .errors import (
    BeforeEpochWindow,
    CodeError,
    Corrupt,
    HmacFailure,
    ImageIoFailure,
    InvalidAlgorithm,
    InvalidCounter,
    InvalidDigits,
    InvalidParameter,
    InvalidPeriod,
    InvalidSecret,
    MissingSecret,
    NotFound,
    OTPError,
    PayloadTooLarge,
    QrError,
    UnsupportedScheme,
    UnsupportedType,
    UriError,
)
from .hmac_type import HMACType
from .keys import (
    HOTPKey,
    TOTPKey,
    from_uri_record,
    otpauth_from_qr_code,
    otpauth_from_uri,
)
from .otp_core import generate_base32_secret, hotp, totp, verify_hotp, verify_totp
from .uri import URI, KeyType

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "HMACType",
    "KeyType",
    "HOTPKey",
    "TOTPKey",
    "URI",
    "from_uri_record",
    "otpauth_from_uri",
    "otpauth_from_qr_code",
    "generate_base32_secret",
    "hotp",
    "totp",
    "verify_hotp",
    "verify_totp",
    "OTPError",
    "CodeError",
    "InvalidSecret",
    "InvalidDigits",
    "InvalidPeriod",
    "InvalidCounter",
    "InvalidAlgorithm",
    "BeforeEpochWindow",
    "HmacFailure",
    "UriError",
    "MissingSecret",
    "InvalidParameter",
    "UnsupportedScheme",
    "UnsupportedType",
    "QrError",
    "PayloadTooLarge",
    "NotFound",
    "Corrupt",
    "ImageIoFailure",
]
