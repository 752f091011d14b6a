"""
errors.py — Exception types raised by the otpuri core.

Every failure is reported to the immediate caller; there is no partial result.
All exceptions derive from ValueError so callers that only care about
"bad input" can catch that.
"""

from typing import Optional


class OtpUriError(ValueError):
    """Base class. `field` names the offending Descriptor field, if any."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class NotAnOtpUri(OtpUriError):
    """Decoded input does not contain the `otpauth` scheme token."""


class MalformedQuery(OtpUriError):
    """Query part missing, or a parameter pair without '='."""


class MissingSecret(OtpUriError):
    """Secret absent or empty when building a Descriptor."""

    def __init__(self, message: str = "secret is mandatory and was not provided") -> None:
        super().__init__(message, field="secret")


class InvalidDigits(OtpUriError):
    def __init__(self, value) -> None:
        super().__init__(f"digits must be one of 6, 7 or 8 (got {value!r})", field="digits")
        self.value = value


class InvalidPeriod(OtpUriError):
    def __init__(self, value) -> None:
        super().__init__(f"period can only be 15, 30 or 60 (got {value!r})", field="period")
        self.value = value


class UnsupportedAlgorithm(OtpUriError):
    def __init__(self, value) -> None:
        super().__init__(
            f"unsupported algorithm {value!r}; expected SHA1, SHA256 or SHA512",
            field="algorithm",
        )
        self.value = value


class InvalidSecret(OtpUriError):
    """Secret text could not be decoded into key material."""

    def __init__(self, message: str = "Invalid Base32 secret") -> None:
        super().__init__(message, field="secret")


class InvalidTimestamp(OtpUriError):
    """Instant to compute a code for lies before the Unix epoch."""

    def __init__(self, value) -> None:
        super().__init__(f"timestamp must not be negative (got {value!r})", field="timestamp")
        self.value = value
