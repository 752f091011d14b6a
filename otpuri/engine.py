"""
engine.py — HOTP (RFC 4226) / TOTP (RFC 6238) passcodes for a Descriptor.

    HOTP(K, C) = Truncate(HMAC-<alg>(K, C)) mod 10^digits
    TOTP(K, T) = HOTP(K, floor(T / period))

Truncate: offset = low 4 bits of the last MAC byte; take 4 bytes from there
as a big-endian integer and clear the top bit (31-bit result).

The Descriptor's secret is used as key material exactly as stored unless the
caller asks for another reading of it (SecretEncoding.BASE32, which is what
authenticator apps use). Nothing here guesses the encoding.
"""

import base64
import binascii
import enum
import hmac
import struct
import time
from typing import Callable, Optional, Tuple

import pyotp

from .descriptor import DEFAULT_DIGITS, Algorithm, Descriptor
from .errors import InvalidSecret, InvalidTimestamp, OtpUriError, UnsupportedAlgorithm

Clock = Callable[[], float]


class SecretEncoding(enum.Enum):
    RAW = "raw"          # UTF-8 bytes of the secret text
    BASE32 = "base32"    # RFC 4648 base32 text, padding optional


# --- key material ----------------------------------------------------------
def generate_base32_secret(length: int = 32) -> str:
    """Random base32 secret (no padding) for a new record."""
    return pyotp.random_base32(length)


def decode_base32(secret: str) -> bytes:
    """
    Decode a base32 secret (case-insensitive, whitespace and padding optional).

    Raises:
        InvalidSecret: text is not valid base32
    """
    text = "".join(secret.split()).upper().rstrip("=")
    text += "=" * (-len(text) % 8)
    try:
        return base64.b32decode(text, casefold=True)
    except binascii.Error as e:
        raise InvalidSecret() from e


def key_material(secret: str, encoding: SecretEncoding = SecretEncoding.RAW) -> bytes:
    if encoding is SecretEncoding.BASE32:
        return decode_base32(secret)
    return secret.encode("utf-8")


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """Counter as 8-byte big-endian, e.g. 1 -> b'\\x00...\\x01'."""
    return struct.pack(">Q", i)


def dynamic_truncate(digest: bytes) -> int:
    offset = digest[-1] & 0x0F
    return struct.unpack(">L", digest[offset:offset + 4])[0] & 0x7FFFFFFF


def hotp(key: bytes, counter: int, digits: int = DEFAULT_DIGITS,
         algorithm: Algorithm = Algorithm.SHA1) -> str:
    """
    HOTP value for `counter`, zero-padded to `digits` characters.

    Raises:
        ValueError: negative counter
        UnsupportedAlgorithm: `algorithm` is not an Algorithm member
    """
    if counter < 0:
        raise ValueError("HOTP counter must be non-negative")
    if not isinstance(algorithm, Algorithm):
        raise UnsupportedAlgorithm(algorithm)
    digest = hmac.new(key, int_to_bytes(counter), algorithm.hashlib_name).digest()
    code = dynamic_truncate(digest) % 10 ** digits
    return str(code).zfill(digits)


def counter_at(timestamp: float, period: int) -> int:
    return int(timestamp // period)


def seconds_remaining(timestamp: float, period: int) -> int:
    """Seconds until the code valid at `timestamp` rolls over."""
    return int(period - (int(timestamp) % period))


def split_code(code: str) -> str:
    """Insert a hyphen at the midpoint: 123-456, 123-4567, 1234-5678."""
    left = len(code) // 2
    return f"{code[:left]}-{code[left:]}"


# --- Descriptor level ------------------------------------------------------
def _now(timestamp: Optional[float], clock: Clock) -> float:
    ts = clock() if timestamp is None else timestamp
    if ts < 0:
        raise InvalidTimestamp(ts)
    return ts


def compute(descriptor: Descriptor, timestamp: Optional[float] = None, *,
            encoding: SecretEncoding = SecretEncoding.RAW,
            clock: Clock = time.time) -> str:
    """
    TOTP code of `descriptor` at `timestamp` (epoch seconds, default: now).

    Arguments:
        descriptor: validated record
        timestamp: instant to compute for; None reads `clock`
        encoding: how to turn descriptor.secret into key bytes
        clock: wall clock used when timestamp is None

    Returns:
        str: exactly descriptor.digits characters, left zero-padded
    """
    key = key_material(descriptor.secret, encoding)
    counter = counter_at(_now(timestamp, clock), descriptor.period)
    return hotp(key, counter, descriptor.digits, descriptor.algorithm)


def compute_split(descriptor: Descriptor, timestamp: Optional[float] = None, *,
                  encoding: SecretEncoding = SecretEncoding.RAW,
                  clock: Clock = time.time) -> str:
    return split_code(compute(descriptor, timestamp, encoding=encoding, clock=clock))


def totp(descriptor: Descriptor, timestamp: Optional[float] = None, *,
         encoding: SecretEncoding = SecretEncoding.RAW,
         clock: Clock = time.time) -> Tuple[str, int]:
    """Return (code, remaining_seconds) for `timestamp` (default: now)."""
    ts = _now(timestamp, clock)
    code = compute(descriptor, ts, encoding=encoding)
    return code, seconds_remaining(ts, descriptor.period)


def verify(descriptor: Descriptor, code: str, *, window: int = 1,
           timestamp: Optional[float] = None,
           encoding: SecretEncoding = SecretEncoding.RAW,
           clock: Clock = time.time) -> bool:
    """
    True if `code` matches any step within +/- `window` periods of `timestamp`.
    Steps before the epoch are skipped.
    """
    if window < 0:
        raise OtpUriError(f"window must not be negative (got {window!r})", field="window")
    key = key_material(descriptor.secret, encoding)
    counter = counter_at(_now(timestamp, clock), descriptor.period)
    given = code.encode("utf-8")
    for offset in range(-window, window + 1):
        test_counter = counter + offset
        if test_counter < 0:
            continue
        expected = hotp(key, test_counter, descriptor.digits, descriptor.algorithm)
        if hmac.compare_digest(expected.encode("ascii"), given):
            return True
    return False
