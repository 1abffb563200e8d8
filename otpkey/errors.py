"""
errors.py — Exception hierarchy for otpkey.

Every failure raised by the library derives from OTPError, grouped by the
component that raises it:

- CodeError: code engine and key construction (secret, digits, algorithm,
  period, counter)
- UriError:  otpauth:// parsing
- QrError:   QR image encode / decode / file I/O

Validation errors also subclass ValueError, so callers that only catch
ValueError (the way a bad base32 secret was always reported) keep working.
"""


class OTPError(Exception):
    """Base class for all otpkey errors."""


# --- Code engine -----------------------------------------------------------
class CodeError(OTPError):
    """Raised when a code cannot be computed."""


class InvalidSecret(CodeError, ValueError):
    """The secret is not valid base32 or decodes to nothing."""


class InvalidDigits(CodeError, ValueError):
    """The digit count is outside the supported range."""


class InvalidPeriod(CodeError, ValueError):
    """The TOTP time step is not a positive integer."""


class InvalidCounter(CodeError, ValueError):
    """The HOTP counter does not fit in an unsigned 64-bit integer."""


class InvalidAlgorithm(CodeError, ValueError):
    """The HMAC algorithm name is not SHA1, SHA256 or SHA512."""


class BeforeEpochWindow(CodeError):
    """The timestamp lies before the key's start time t0."""


class HmacFailure(CodeError):
    """The HMAC primitive rejected its input."""


# --- URI codec -------------------------------------------------------------
class UriError(OTPError, ValueError):
    """Raised when an otpauth:// URI cannot be parsed."""


class MissingSecret(UriError):
    """The URI has no secret parameter."""


class InvalidParameter(UriError):
    """A query parameter has a value that cannot be parsed."""

    def __init__(self, field: str, value: str = None):
        self.field = field
        self.value = value
        msg = f"invalid value for {field!r}"
        if value is not None:
            msg += f": {value!r}"
        super().__init__(msg)


class UnsupportedScheme(UriError):
    """The URI scheme is not otpauth."""


class UnsupportedType(UriError):
    """The URI host is neither hotp nor totp."""


# --- QR codec --------------------------------------------------------------
class QrError(OTPError):
    """Raised when a QR image cannot be produced or read."""


class PayloadTooLarge(QrError):
    """The text does not fit in a QR symbol of the requested size."""


class NotFound(QrError):
    """No QR symbol could be located in the image."""


class Corrupt(QrError):
    """A QR symbol was located but its data could not be recovered."""


class ImageIoFailure(QrError):
    """Reading or writing the image file failed."""
