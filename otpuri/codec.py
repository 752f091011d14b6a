"""
codec.py — Parse and serialize otpauth:// URIs.

Parsing is deliberately permissive. The label is found in the wild as
`Issuer:account`, `account(Issuer)` or a single bare token, and the issuer may
also (or only) appear as the `issuer=` query parameter. Serializing always
produces the canonical layout:

    otpauth://totp/Issuer:account?secret=...&issuer=...&algorithm=...&digits=...&period=...
"""

import logging
import random
import re
import urllib.parse
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .descriptor import Assume, Descriptor, DescriptorBuilder
from .errors import MalformedQuery, NotAnOtpUri

logger = logging.getLogger(__name__)

SCHEME = "otpauth"
HOST = "totp"
DECODE_CHARSET = "latin-1"

_PREFIX_RE = re.compile(r"otpauth://(?:hotp|totp)/?")
_PARENTHESIZED_RE = re.compile(r"(.+)\((.+)\)")

# Characters a URI keeps literally in its path / query (RFC 3986 pchar set).
# '+' is left out: parsing reads a literal '+' as a space.
_PATH_SAFE = "/:@!$&'()*,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"

# Tokens stripped (first occurrence only) from a secret before serializing.
_SECRET_JUNK = (r"\s+", r"\.", "_", "-", "//g", "/g")


@dataclass
class ParsedUri:
    """Raw field text pulled out of a URI, before Descriptor validation."""

    label_issuer: str = ""
    account_name: str = ""
    secret: str = ""
    param_issuer: str = ""
    algorithm: Optional[str] = None
    digits: Optional[str] = None
    period: Optional[str] = None


# --- label matchers --------------------------------------------------------
# Each returns (issuer, account) or None; tried in order, first hit wins.
LabelMatch = Optional[Tuple[str, str]]


def _match_parenthesized(label: str, assume: Assume) -> LabelMatch:
    m = _PARENTHESIZED_RE.fullmatch(label)
    if m is None:
        return None
    return m.group(2), m.group(1)


def _match_colon(label: str, assume: Assume) -> LabelMatch:
    if ":" not in label:
        return None
    issuer, account = label.split(":", 1)
    return issuer, account


def _match_bare(label: str, assume: Assume) -> LabelMatch:
    if len(label) <= 2:
        return None
    if assume is Assume.ISSUER:
        return label, ""
    return "", label


LABEL_MATCHERS: Tuple[Callable[[str, Assume], LabelMatch], ...] = (
    _match_parenthesized,
    _match_colon,
    _match_bare,
)


def parse_label(label: str, assume: Assume = Assume.USERNAME) -> Tuple[str, str]:
    """Return (issuer, account) for a URI label; ("", "") if nothing matches."""
    for matcher in LABEL_MATCHERS:
        found = matcher(label, assume)
        if found is not None:
            logger.debug("label %r matched %s", label, matcher.__name__)
            return found
    return "", ""


def parse_query(query: str, fields: ParsedUri) -> None:
    """Fill `fields` from `a=b&c=d`; unknown keys are ignored."""
    for pair in query.split("&"):
        if not pair:
            continue
        key, sep, value = pair.partition("=")
        if not sep:
            raise MalformedQuery(f"query parameter {pair!r} has no '=' separator")
        key = key.lower()
        if key == "secret":
            fields.secret = value
        elif key == "issuer":
            fields.param_issuer = value
        elif key == "algorithm":
            fields.algorithm = value.upper()
        elif key == "digits":
            fields.digits = value
        elif key == "period":
            fields.period = value


def reconcile_issuers(fields: ParsedUri) -> None:
    """
    Make label and parameter issuer agree.

    - label only -> copied into the parameter
    - parameter present -> overwrites the label, whatever the label said
    - neither -> both stay empty (build() assigns a placeholder later)
    """
    if fields.param_issuer:
        if fields.label_issuer and fields.label_issuer != fields.param_issuer:
            logger.debug(
                "issuer parameter %r overrides label issuer %r",
                fields.param_issuer, fields.label_issuer,
            )
        fields.label_issuer = fields.param_issuer
    elif fields.label_issuer:
        fields.param_issuer = fields.label_issuer


def parse_fields(text: str, assume: Assume = Assume.USERNAME,
                 encoding: str = DECODE_CHARSET) -> ParsedUri:
    """
    Split an otpauth URI into raw field text.

    Arguments:
        text: the URI, percent-encoded or already decoded
        assume: where a bare single-token label goes
        encoding: single-byte charset used for percent-decoding

    Raises:
        NotAnOtpUri: text has no `otpauth` token
        MalformedQuery: no '?' or a parameter without '='
    """
    decoded = urllib.parse.unquote_plus(text, encoding=encoding)
    if SCHEME not in decoded:
        raise NotAnOtpUri("not an otpauth URI")

    rest = _PREFIX_RE.sub("", decoded, count=1)
    label, sep, query = rest.partition("?")
    if not sep:
        raise MalformedQuery("otpauth URI has no query part")

    fields = ParsedUri()
    fields.label_issuer, fields.account_name = parse_label(label, assume)
    parse_query(query, fields)
    reconcile_issuers(fields)
    return fields


def parse(text: str, assume: Assume = Assume.USERNAME,
          rng: Optional[random.Random] = None,
          encoding: str = DECODE_CHARSET) -> Descriptor:
    """
    Parse an otpauth URI into a validated Descriptor.

    Raises whatever parse_fields raises, plus MissingSecret, InvalidDigits,
    InvalidPeriod and UnsupportedAlgorithm from validation.
    """
    fields = parse_fields(text, assume=assume, encoding=encoding)
    return DescriptorBuilder.from_parsed(fields).build(rng=rng)


def from_decoded_text(text: Optional[str], assume: Assume = Assume.USERNAME,
                      rng: Optional[random.Random] = None) -> Optional[Descriptor]:
    """
    Build a Descriptor from the output of an image (QR) decoder.

    None or "" (decoder found nothing) and non-otpauth text give None.
    """
    if not text:
        return None
    try:
        return parse(text, assume=assume, rng=rng)
    except NotAnOtpUri:
        logger.debug("decoded text is not an otpauth URI")
        return None


# --- serialize -------------------------------------------------------------
def clean_secret(secret: str) -> str:
    """Drop the first whitespace run and the first '.', '_', '-', '//g', '/g'."""
    for junk in _SECRET_JUNK:
        secret = re.sub(junk, "", secret, count=1)
    return secret


def build_label(descriptor: Descriptor) -> str:
    return "/" + descriptor.label_issuer + ":" + descriptor.account_name


def build_query(descriptor: Descriptor) -> str:
    clauses = [
        ("issuer", descriptor.param_issuer),
        ("algorithm", descriptor.algorithm.value),
        ("digits", str(descriptor.digits)),
        ("period", str(descriptor.period)),
    ]
    query = "secret=" + clean_secret(descriptor.secret)
    for key, value in clauses:
        if value:
            query += f"&{key}={value}"
    return query


def percent_encode(text: str, safe: str) -> str:
    """
    Percent-encode with the single-byte charset parse() decodes with, so
    latin-1 names survive a round trip. Text outside latin-1 falls back to
    UTF-8 escapes.
    """
    try:
        return urllib.parse.quote(text, safe=safe, encoding=DECODE_CHARSET, errors="strict")
    except UnicodeEncodeError:
        return urllib.parse.quote(text, safe=safe, encoding="utf-8")


def serialize(descriptor: Descriptor) -> str:
    """Return the canonical, ASCII percent-encoded otpauth URI."""
    path = percent_encode(build_label(descriptor), _PATH_SAFE)
    query = percent_encode(build_query(descriptor), _QUERY_SAFE)
    return urllib.parse.urlunsplit((SCHEME, HOST, path, query, ""))


def serialize_decoded(descriptor: Descriptor) -> str:
    """Human-readable variant of serialize(): same URI without percent-encoding."""
    return urllib.parse.urlunsplit(
        (SCHEME, HOST, build_label(descriptor), build_query(descriptor), "")
    )
