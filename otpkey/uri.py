"""
uri.py — otpauth:// URI codec.

Format (the Key Uri Format understood by Google Authenticator and friends):

    otpauth://{hotp|totp}/{issuer}:{account}?secret=BASE32&issuer=STR
        &algorithm={SHA1|SHA256|SHA512}&digits=N&{counter=N|period=N}

URI is the canonical record exchanged with the keys; it is rebuilt on every
serialization and thrown away after parsing. This module knows nothing about
code generation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
from urllib.parse import parse_qsl, quote, unquote_plus, urlencode, urlsplit
import logging

from .errors import (
    InvalidParameter,
    MissingSecret,
    UnsupportedScheme,
    UnsupportedType,
)
from .hmac_type import HMACType
from .otp_core import DEFAULT_DIGITS, DEFAULT_TIME_STEP

logger = logging.getLogger(__name__)

SCHEME = "otpauth"
LABEL_SAFE = ":@"


class KeyType(str, Enum):
    """Kind of key; the value is the otpauth:// host."""

    HOTP = "hotp"
    TOTP = "totp"

    def __str__(self) -> str:
        return self.value


@dataclass
class URI:
    """Parameters carried by an otpauth:// URI."""

    key_type: KeyType = KeyType.TOTP
    name: str = ""
    secret: str = ""
    algorithm: HMACType = HMACType.SHA1
    digits: int = DEFAULT_DIGITS
    # only used for HOTP
    counter: Optional[int] = None
    # time step in seconds, only used for TOTP
    period: Optional[int] = None
    issuer: Optional[str] = None

    @property
    def label(self) -> str:
        """`issuer:name`, or `name` verbatim when it already carries the issuer."""
        if not self.issuer:
            return self.name
        prefix = self.issuer + ":"
        if self.name.startswith(prefix):
            return self.name
        return prefix + self.name

    @classmethod
    def from_string(cls, value: str) -> "URI":
        return deserialize(value)

    def __str__(self) -> str:
        return serialize(self)


def split_label(label: str, issuer: Optional[str] = None) -> Tuple[Optional[str], str]:
    """
    Split a decoded label into (issuer, account name).

    An explicit `issuer` wins over the label prefix. When the label starts
    with that issuer the prefix is stripped; otherwise the label is split on
    its first colon.
    """
    issuer = issuer or None
    if issuer is not None and label.startswith(issuer + ":"):
        return issuer, label[len(issuer) + 1:]
    if ":" in label:
        prefix, name = label.split(":", 1)
        return issuer or prefix or None, name
    return issuer, label


def serialize(record: URI) -> str:
    """
    Render a URI record as otpauth:// text.

    Query parameters are always emitted in the order
    secret, issuer, algorithm, digits, counter|period; a missing issuer is
    left out rather than emitted empty.
    """
    key_type = KeyType(record.key_type)
    params = [("secret", record.secret)]
    if record.issuer:
        params.append(("issuer", record.issuer))
    params.append(("algorithm", HMACType.from_name(record.algorithm).value))
    params.append(("digits", str(record.digits)))
    if key_type is KeyType.HOTP:
        params.append(("counter", str(record.counter if record.counter is not None else 0)))
    else:
        params.append(("period", str(record.period if record.period is not None else DEFAULT_TIME_STEP)))

    label = quote(record.label, safe=LABEL_SAFE)
    query = urlencode(params, quote_via=quote)
    return f"{SCHEME}://{key_type.value}/{label}?{query}"


def _parse_uint(field: str, value: str) -> int:
    if not (value.isascii() and value.isdigit()):
        raise InvalidParameter(field, value)
    return int(value)


def deserialize(value: str) -> URI:
    """
    Parse otpauth:// text into a URI record.

    Defaults: digits=6, algorithm=SHA1, counter=0 (hotp), period=30 (totp).
    Unknown query keys are ignored; for repeated keys the first one wins.

    Raises:
        UnsupportedScheme: scheme is not otpauth
        UnsupportedType: host is not hotp / totp
        MissingSecret: no (or an empty) secret parameter
        InvalidParameter: bad algorithm or non-decimal integer field
    """
    value = value.strip()
    # urlsplit lowercases the scheme; it must be exactly "otpauth"
    scheme = value.split("://", 1)[0] if "://" in value else ""
    if scheme != SCHEME:
        raise UnsupportedScheme(f"expected {SCHEME}://, got {scheme or 'no'} scheme")
    parts = urlsplit(value)
    try:
        key_type = KeyType(parts.netloc.lower())
    except ValueError:
        raise UnsupportedType(f"unsupported key type: {parts.netloc!r}") from None

    query = {}
    for key, val in parse_qsl(parts.query, keep_blank_values=True):
        query.setdefault(key, val)

    secret = query.get("secret", "").strip()
    if not secret:
        raise MissingSecret("otpauth URI has no secret")

    algorithm = HMACType.SHA1
    if "algorithm" in query:
        try:
            algorithm = HMACType.from_name(query["algorithm"])
        except ValueError:
            raise InvalidParameter("algorithm", query["algorithm"]) from None

    digits = DEFAULT_DIGITS
    if "digits" in query:
        digits = _parse_uint("digits", query["digits"])

    counter = period = None
    if key_type is KeyType.HOTP:
        counter = _parse_uint("counter", query["counter"]) if "counter" in query else 0
    else:
        period = _parse_uint("period", query["period"]) if "period" in query else DEFAULT_TIME_STEP

    issuer, name = split_label(unquote_plus(parts.path.lstrip("/")), query.get("issuer"))
    logger.debug("parsed otpauth URI: type=%s issuer=%r algorithm=%s digits=%d", key_type.value, issuer, algorithm.value, digits)
    return URI(
        key_type=key_type,
        name=name,
        secret=secret,
        algorithm=algorithm,
        digits=digits,
        counter=counter,
        period=period,
        issuer=issuer,
    )
