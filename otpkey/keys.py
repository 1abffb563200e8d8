"""
keys.py — HOTP / TOTP keys: the objects applications hold on to.

A key bundles a base32 secret with its parameters and offers one call
surface for both kinds: get_code, get_name, get_type, get_uri. Keys can be
built directly, from an otpauth:// URI, or from a QR image:

    >>> key = TOTPKey(key="GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ", name="alice", issuer="ACME")
    >>> key.get_code(timestamp=59)
    '287082'
    >>> key.to_uri()
    'otpauth://totp/ACME:alice?secret=GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ&issuer=ACME&algorithm=SHA1&digits=6&period=30'

Keys are plain single-owner objects: no global state and no locking.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
import logging

from PIL import Image

from . import otp_core, qr
from .hmac_type import HMACType
from .otp_core import DEFAULT_DIGITS, DEFAULT_TIME_STEP
from .uri import URI, KeyType, deserialize, serialize

logger = logging.getLogger(__name__)


def canonical_label(name: str, issuer: Optional[str]) -> Tuple[Optional[str], str]:
    """
    Bring (issuer, name) into the form the URI parser produces.

    - an empty issuer becomes None
    - without an issuer, a "prefix:" in the name becomes the issuer
    - with an issuer, any leading "issuer:" is dropped from the name
    """
    issuer = issuer or None
    if issuer is None:
        if ":" in name:
            prefix, name = name.split(":", 1)
            issuer = prefix or None
        return issuer, name
    prefix = issuer + ":"
    while name.startswith(prefix):
        name = name[len(prefix):]
    return issuer, name


class _KeyMixin:
    """Helpers shared by HOTPKey and TOTPKey."""

    def _validate(self) -> None:
        otp_core.decode_secret(self.key)
        otp_core.check_digits(self.digits)
        self.hmac_type = HMACType.from_name(self.hmac_type)
        self.issuer, self.name = canonical_label(self.name, self.issuer)
        self.recovery_codes = list(self.recovery_codes)

    def _secret_bytes(self) -> bytes:
        return otp_core.decode_secret(self.key)

    def get_name(self) -> str:
        return self.name

    def set_name(self, name: str) -> None:
        self.issuer, self.name = canonical_label(name, self.issuer)

    def get_recovery_codes(self) -> List[str]:
        return list(self.recovery_codes)

    def set_recovery_codes(self, recovery_codes: List[str]) -> None:
        self.recovery_codes = list(recovery_codes)

    def to_uri(self) -> str:
        """otpauth:// text for this key."""
        return serialize(self.get_uri())

    def to_qr_code(self, path=None, size: int = qr.QR_IMAGE_SIZE) -> Image.Image:
        """
        Render this key's URI as a QR image; also save it when `path` is given.
        """
        if path is not None:
            return qr.write_qr_code(self.to_uri(), path, size=size)
        return qr.encode(self.to_uri(), size=size)


@dataclass
class HOTPKey(_KeyMixin):
    """
    Counter based key (RFC 4226).

    get_code() never touches the counter; call advance_counter() once a
    code has been used so that the next draw yields a fresh one.
    """

    key: str
    name: str = ""
    issuer: Optional[str] = None
    digits: int = DEFAULT_DIGITS
    counter: int = 0
    hmac_type: HMACType = HMACType.SHA1
    recovery_codes: List[str] = field(default_factory=list)

    def __post_init__(self):
        self._validate()
        otp_core.check_counter(self.counter)

    def get_type(self) -> KeyType:
        return KeyType.HOTP

    def get_code(self) -> str:
        """Code for the current counter."""
        return otp_core.hotp(self._secret_bytes(), self.counter, self.hmac_type, self.digits)

    def advance_counter(self) -> int:
        """Increment the counter by one and return the new value."""
        self.counter = otp_core.check_counter(self.counter + 1)
        logger.debug("HOTP key %r advanced to counter %d", self.name, self.counter)
        return self.counter

    def verify(self, code: str, look_ahead: int = 0) -> bool:
        """
        Check `code` against the counter (and `look_ahead` counters after it).
        On a match the counter moves past the matching value.
        """
        ok, next_counter = otp_core.verify_hotp(
            self._secret_bytes(), code, self.counter, self.hmac_type, self.digits, look_ahead
        )
        if ok:
            self.counter = next_counter
        return ok

    def get_uri(self) -> URI:
        return URI(
            key_type=KeyType.HOTP,
            name=self.name,
            secret=self.key,
            algorithm=self.hmac_type,
            digits=self.digits,
            counter=self.counter,
            issuer=self.issuer,
        )


@dataclass
class TOTPKey(_KeyMixin):
    """Time based key (RFC 6238)."""

    key: str
    name: str = ""
    issuer: Optional[str] = None
    digits: int = DEFAULT_DIGITS
    time_step: int = DEFAULT_TIME_STEP
    t0: int = 0
    hmac_type: HMACType = HMACType.SHA1
    recovery_codes: List[str] = field(default_factory=list)

    def __post_init__(self):
        self._validate()
        otp_core.check_time_step(self.time_step)

    def get_type(self) -> KeyType:
        return KeyType.TOTP

    def get_code(self, timestamp: Optional[int] = None) -> str:
        """Code for `timestamp` (epoch seconds, default now)."""
        return otp_core.totp(self._secret_bytes(), timestamp, self.time_step, self.t0, self.hmac_type, self.digits)

    def time_remaining(self, timestamp: Optional[int] = None) -> int:
        return otp_core.time_remaining(timestamp, self.time_step, self.t0)

    def verify(self, code: str, timestamp: Optional[int] = None, window: int = 1) -> bool:
        return otp_core.verify_totp(
            self._secret_bytes(), code, timestamp, self.time_step, self.t0, self.hmac_type, self.digits, window
        )

    def get_uri(self) -> URI:
        return URI(
            key_type=KeyType.TOTP,
            name=self.name,
            secret=self.key,
            algorithm=self.hmac_type,
            digits=self.digits,
            period=self.time_step,
            issuer=self.issuer,
        )


Key = Union[HOTPKey, TOTPKey]


# --- Factories -------------------------------------------------------------
def from_uri_record(record: URI) -> Key:
    """Build the key kind named by `record.key_type`."""
    if KeyType(record.key_type) is KeyType.HOTP:
        return HOTPKey(
            key=record.secret,
            name=record.name,
            issuer=record.issuer,
            digits=record.digits,
            counter=record.counter if record.counter is not None else 0,
            hmac_type=record.algorithm,
        )
    return TOTPKey(
        key=record.secret,
        name=record.name,
        issuer=record.issuer,
        digits=record.digits,
        time_step=record.period if record.period is not None else DEFAULT_TIME_STEP,
        hmac_type=record.algorithm,
    )


def otpauth_from_uri(value: str) -> Key:
    """
    Build a key from otpauth:// text.

    Raises:
        UriError: if the text cannot be parsed
        CodeError: if the parameters are invalid (bad secret, digits, period)
    """
    return from_uri_record(deserialize(value))


def otpauth_from_qr_code(source) -> Key:
    """
    Build a key from a QR image, given as a PIL image or a file path.

    Raises:
        QrError, UriError, CodeError
    """
    if isinstance(source, Image.Image):
        text = qr.decode(source)
    else:
        text = qr.read_qr_code(source)
    return otpauth_from_uri(text)
