"""
otp_core.py — Core code engine for HOTP (RFC 4226) / TOTP (RFC 6238).

Goals:
- Pure functions only: no file I/O, no CLI. Keys (keys.py) and the CLI
  (otp_cli.py) call into this module.
- Every function takes raw key bytes; base32 handling is isolated in
  decode_secret() so callers can validate a secret once.

Security notes:
- verify_hotp / verify_totp compare codes with hmac.compare_digest.
- Secrets and generated codes are never written to the log.
"""

from typing import Optional, Tuple
import base64
import binascii
import hmac
import logging
import struct
import time

import pyotp

from .errors import (
    BeforeEpochWindow,
    InvalidCounter,
    InvalidDigits,
    InvalidPeriod,
    InvalidSecret,
)
from .hmac_type import HMACType

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6          # standard: 6 digits
DEFAULT_TIME_STEP = 30      # TOTP step (seconds)
MIN_DIGITS = 1
MAX_DIGITS = 10             # a 31-bit truncated value has at most 10 digits
SECRET_LENGTH = 32          # base32 chars -> 160-bit secret
MAX_COUNTER = 2 ** 64 - 1


# --- Secrets ---------------------------------------------------------------
def generate_base32_secret(length: int = SECRET_LENGTH) -> str:
    """
    Generate a random base32 secret (uppercase, no padding).

    The randomness comes from pyotp.random_base32, which draws from the
    `secrets` CSPRNG.
    """
    return pyotp.random_base32(length)


def decode_secret(secret_b32: str) -> bytes:
    """
    Decode a base32 secret into raw key bytes.

    - Case-insensitive; spaces and "=" padding are optional.
    - The result must be non-empty.

    Raises:
        InvalidSecret: if the text is not valid base32 or decodes to nothing
    """
    if not isinstance(secret_b32, str):
        raise InvalidSecret("secret must be base32 text")
    cleaned = "".join(secret_b32.split()).rstrip("=")
    padded = cleaned + "=" * (-len(cleaned) % 8)
    try:
        key = base64.b32decode(padded, casefold=True)
    except binascii.Error as e:
        raise InvalidSecret("Invalid Base32 secret") from e
    if not key:
        raise InvalidSecret("secret is empty")
    return key


# --- Validation ------------------------------------------------------------
def check_digits(digits: int) -> int:
    if isinstance(digits, bool) or not isinstance(digits, int):
        raise InvalidDigits(f"digits must be an integer, got {digits!r}")
    if not MIN_DIGITS <= digits <= MAX_DIGITS:
        raise InvalidDigits(f"digits must be between {MIN_DIGITS} and {MAX_DIGITS}, got {digits}")
    return digits


def check_time_step(time_step: int) -> int:
    if isinstance(time_step, bool) or not isinstance(time_step, int) or time_step <= 0:
        raise InvalidPeriod(f"time step must be a positive integer, got {time_step!r}")
    return time_step


def check_counter(counter: int) -> int:
    if isinstance(counter, bool) or not isinstance(counter, int):
        raise InvalidCounter(f"counter must be an integer, got {counter!r}")
    if not 0 <= counter <= MAX_COUNTER:
        raise InvalidCounter(f"counter out of range: {counter}")
    return counter


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """
    Serialize a counter as the 8-byte big-endian message RFC 4226 requires.

    Example: int_to_bytes(1) -> b'\\x00\\x00\\x00\\x00\\x00\\x00\\x00\\x01'
    """
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    Apply RFC 4226 dynamic truncation.

    - offset = last_byte & 0x0F
    - take 4 bytes from offset, clear the MSB (0x7F) of the first one
    - return the 31-bit unsigned integer

    The shortest digest (SHA1, 20 bytes) still covers offset 15 + 4 bytes.
    """
    offset = hmac_digest[-1] & 0x0F
    code = (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )
    return code


def hotp(
    key: bytes,
    counter: int,
    hmac_type: HMACType = HMACType.SHA1,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """
    Generate an HOTP code per RFC 4226.

    Steps:
    1. Message = 8-byte big-endian counter
    2. HMAC(hmac_type, key, message)
    3. Dynamic truncate -> dbc
    4. otp = dbc % 10^digits
    5. Zero-pad to exactly `digits` characters

    Arguments:
        key: raw secret bytes (see decode_secret)
        counter: unsigned 64-bit counter
        hmac_type: digest variant
        digits: code length, 1..10

    Returns:
        str: the zero-padded code

    Raises:
        InvalidSecret, InvalidDigits, InvalidCounter, HmacFailure
    """
    if not key:
        raise InvalidSecret("secret is empty")
    check_digits(digits)
    check_counter(counter)
    hmac_type = HMACType.from_name(hmac_type)

    logger.debug("HOTP: HMAC-%s(key=secret, msg=counter=%d), digits=%d", hmac_type.value, counter, digits)
    digest = hmac_type.get_hash(key, int_to_bytes(counter))
    dbc = dynamic_truncate(digest)
    otp_val = dbc % (10 ** digits)
    return str(otp_val).zfill(digits)


def time_counter(timestamp: int, time_step: int = DEFAULT_TIME_STEP, t0: int = 0) -> int:
    """
    TOTP counter T = floor((timestamp - T0) / X).

    Raises:
        InvalidPeriod: if time_step is not positive
        BeforeEpochWindow: if timestamp < t0 (the counter would be negative)
    """
    check_time_step(time_step)
    counter = (int(timestamp) - t0) // time_step
    if counter < 0:
        raise BeforeEpochWindow(f"timestamp {timestamp} is before t0={t0}")
    return counter


def time_remaining(timestamp: Optional[int] = None, time_step: int = DEFAULT_TIME_STEP, t0: int = 0) -> int:
    """Seconds left before the code for `timestamp` rolls over."""
    if timestamp is None:
        timestamp = int(time.time())
    check_time_step(time_step)
    return int(time_step - ((int(timestamp) - t0) % time_step))


def totp(
    key: bytes,
    timestamp: Optional[int] = None,
    time_step: int = DEFAULT_TIME_STEP,
    t0: int = 0,
    hmac_type: HMACType = HMACType.SHA1,
    digits: int = DEFAULT_DIGITS,
) -> str:
    """
    Generate a TOTP code per RFC 6238: HOTP(counter = floor((now - T0) / X)).

    Arguments:
        key: raw secret bytes
        timestamp: epoch seconds (None -> time.time())
        time_step: X in seconds, default 30
        t0: start time offset, default 0
        hmac_type: digest variant
        digits: code length

    Returns:
        str: the zero-padded code for the step containing `timestamp`

    Notes:
        With an explicit timestamp the result is fully deterministic.
    """
    if timestamp is None:
        timestamp = int(time.time())
    counter = time_counter(timestamp, time_step, t0)
    logger.debug("TOTP: time=%d, t0=%d, step=%d -> counter=%d", timestamp, t0, time_step, counter)
    return hotp(key, counter, hmac_type, digits)


# --- OTP verification helpers ---------------------------------------------
def verify_totp(
    key: bytes,
    code: str,
    timestamp: Optional[int] = None,
    time_step: int = DEFAULT_TIME_STEP,
    t0: int = 0,
    hmac_type: HMACType = HMACType.SHA1,
    digits: int = DEFAULT_DIGITS,
    window: int = 1,
) -> bool:
    """
    Check a user-supplied TOTP code, accepting +/- `window` steps of drift.

    Steps whose counter would be negative are skipped. Reuse blocking and
    rate limiting are left to the caller.
    """
    if timestamp is None:
        timestamp = int(time.time())
    check_time_step(time_step)
    counter = (int(timestamp) - t0) // time_step
    for offset in range(-window, window + 1):
        test_counter = counter + offset
        if test_counter < 0:
            continue
        expected = hotp(key, test_counter, hmac_type, digits)
        if hmac.compare_digest(expected, str(code)):
            return True
    return False


def verify_hotp(
    key: bytes,
    code: str,
    counter: int,
    hmac_type: HMACType = HMACType.SHA1,
    digits: int = DEFAULT_DIGITS,
    look_ahead: int = 0,
) -> Tuple[bool, int]:
    """
    Check a user-supplied HOTP code against counter .. counter + look_ahead.

    Returns:
        (ok, next_counter)
        - on success next_counter is one past the matching counter
        - on failure next_counter is the unchanged `counter`

    Counters beyond MAX_COUNTER - 1 are never tried.
    """
    check_counter(counter)
    # a match must leave next_counter within range, so MAX_COUNTER itself never matches
    for i in range(min(look_ahead + 1, MAX_COUNTER - counter)):
        expected = hotp(key, counter + i, hmac_type, digits)
        if hmac.compare_digest(expected, str(code)):
            return True, counter + i + 1
    return False, counter
