"""
otpuri package
==============

Parse and build otpauth:// provisioning URIs and compute the TOTP codes
(RFC 4226 / RFC 6238) they describe.

──────────────────────────────────────────────
Core pieces
──────────────────────────────────────────────
- Descriptor / DescriptorBuilder (descriptor.py):
  immutable record of one provisioning URI; the builder validates digits
  (6/7/8) and period (15/30/60) in its setters.

- URI codec (codec.py):
  parse() accepts `Issuer:account`, `account(Issuer)` and bare labels and
  reconciles the label issuer with the `issuer=` parameter;
  serialize() always emits the canonical layout.

- OTP engine (engine.py):
  compute() = HOTP(secret, floor(t / period)), zero-padded to `digits`.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from otpuri import parse, compute, SecretEncoding
>>> d = parse("otpauth://totp/Acme:bob?secret=JBSWY3DPEHPK3PXP&issuer=Acme")
>>> d.issuer, d.account_name
('Acme', 'bob')
>>> code = compute(d, encoding=SecretEncoding.BASE32)
"""

from .codec import (
    clean_secret,
    from_decoded_text,
    parse,
    parse_fields,
    serialize,
    serialize_decoded,
)
from .descriptor import Algorithm, Assume, Descriptor, DescriptorBuilder
from .engine import (
    SecretEncoding,
    compute,
    compute_split,
    generate_base32_secret,
    hotp,
    split_code,
    totp,
    verify,
)
from .errors import (
    InvalidDigits,
    InvalidPeriod,
    InvalidSecret,
    InvalidTimestamp,
    MalformedQuery,
    MissingSecret,
    NotAnOtpUri,
    OtpUriError,
    UnsupportedAlgorithm,
)

__version__ = "1.0.0"

__all__ = [
    "Algorithm",
    "Assume",
    "Descriptor",
    "DescriptorBuilder",
    "SecretEncoding",
    "clean_secret",
    "compute",
    "compute_split",
    "from_decoded_text",
    "generate_base32_secret",
    "hotp",
    "parse",
    "parse_fields",
    "serialize",
    "serialize_decoded",
    "split_code",
    "totp",
    "verify",
    "InvalidDigits",
    "InvalidPeriod",
    "InvalidSecret",
    "InvalidTimestamp",
    "MalformedQuery",
    "MissingSecret",
    "NotAnOtpUri",
    "OtpUriError",
    "UnsupportedAlgorithm",
]
