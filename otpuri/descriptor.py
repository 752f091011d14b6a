"""
descriptor.py — The Descriptor value type and its builder.

A Descriptor is the validated, immutable form of one otpauth provisioning
record. It is only ever created through DescriptorBuilder.build():

    d = (DescriptorBuilder()
         .issuer("Acme")
         .account_name("bob@example.com")
         .secret("JBSWY3DPEHPK3PXP")
         .digits(8)
         .build())

Setters validate immediately: DescriptorBuilder().digits(9) raises
InvalidDigits and leaves the builder untouched.

"Changing" a Descriptor means building a new one, see Descriptor.evolve().
"""

import enum
import logging
import random
from dataclasses import asdict, dataclass
from typing import Optional, Union

from .errors import (
    InvalidDigits,
    InvalidPeriod,
    MissingSecret,
    OtpUriError,
    UnsupportedAlgorithm,
)

logger = logging.getLogger(__name__)

# --- Config / constants ----------------------------------------------------
DEFAULT_DIGITS = 6
DEFAULT_PERIOD = 30                 # TOTP step (seconds)
ALLOWED_DIGITS = (6, 7, 8)
ALLOWED_PERIODS = (15, 30, 60)
UNKNOWN_USERNAME = "UnknownUsername"
UNKNOWN_COMPANY_PREFIX = "Unknown Company "
PLACEHOLDER_RANGE = (1000, 9998)    # inclusive


class Algorithm(enum.Enum):
    SHA1 = "SHA1"
    SHA256 = "SHA256"
    SHA512 = "SHA512"

    @property
    def hashlib_name(self) -> str:
        """Name accepted by hashlib / hmac.new (e.g. 'sha256')."""
        return self.value.lower()

    @classmethod
    def from_name(cls, name: str) -> "Algorithm":
        try:
            return cls(str(name).upper())
        except ValueError:
            raise UnsupportedAlgorithm(name) from None


DEFAULT_ALGORITHM = Algorithm.SHA1


class Assume(enum.Enum):
    """Where a bare, separator-less label goes."""
    USERNAME = "username"
    ISSUER = "issuer"


def _whole_number(value) -> Optional[int]:
    """int for an int or a string of decimal digits; None for anything else."""
    if type(value) is int:
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value)
    return None


def validate_digits(value) -> int:
    digits = _whole_number(value)
    if digits not in ALLOWED_DIGITS:
        raise InvalidDigits(value)
    return digits


def validate_period(value) -> int:
    period = _whole_number(value)
    if period not in ALLOWED_PERIODS:
        raise InvalidPeriod(value)
    return period


def placeholder_issuer(rng: Optional[random.Random] = None) -> str:
    """
    Generate "Unknown Company NNNN" for records that carry no issuer at all.

    A fresh local generator is used when `rng` is not supplied, so concurrent
    builds never share random state.
    """
    rng = rng or random.Random()
    low, high = PLACEHOLDER_RANGE
    return f"{UNKNOWN_COMPANY_PREFIX}{rng.randint(low, high)}"


@dataclass(frozen=True)
class Descriptor:
    """
    One otpauth provisioning record.

    label_issuer / param_issuer are the issuer as found in the URI label and
    in the `issuer=` query parameter. After parsing they are reconciled, so in
    practice they only differ when a caller set them apart on purpose.

    login_url, login_username, login_password and notes are opaque
    pass-through fields: never parsed, validated or serialized.
    """

    secret: str
    account_name: str = UNKNOWN_USERNAME
    label_issuer: str = ""
    param_issuer: str = ""
    algorithm: Algorithm = DEFAULT_ALGORITHM
    digits: int = DEFAULT_DIGITS
    period: int = DEFAULT_PERIOD
    login_url: str = ""
    login_username: str = ""
    login_password: str = ""
    notes: str = ""

    def __post_init__(self) -> None:
        if not self.secret:
            raise MissingSecret()
        if not self.account_name:
            raise OtpUriError("account name must not be empty", field="account_name")
        if not isinstance(self.algorithm, Algorithm):
            raise UnsupportedAlgorithm(self.algorithm)
        if type(self.digits) is not int or self.digits not in ALLOWED_DIGITS:
            raise InvalidDigits(self.digits)
        if type(self.period) is not int or self.period not in ALLOWED_PERIODS:
            raise InvalidPeriod(self.period)

    def __repr__(self) -> str:
        return (
            f"Descriptor(issuer={self.issuer!r}, account={self.account_name!r}, "
            f"alg={self.algorithm.value}, digits={self.digits}, period={self.period})"
        )

    @property
    def issuer(self) -> str:
        return self.label_issuer or self.param_issuer

    def same_secret(self, other: "Descriptor") -> bool:
        return self.secret == other.secret

    def same_uri(self, other: "Descriptor") -> bool:
        """True when both records serialize to the same otpauth URI."""
        return self.to_uri() == other.to_uri()

    def to_uri(self) -> str:
        from .codec import serialize
        return serialize(self)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["algorithm"] = self.algorithm.value
        return data

    def evolve(self, **changes) -> "Descriptor":
        """
        Return a new Descriptor with `changes` applied.

        Keys are builder setter names (secret, issuer, label_issuer,
        param_issuer, account_name, algorithm, digits, period, login_url,
        login_username, login_password, notes). Values are validated exactly
        as on a fresh builder.
        """
        builder = DescriptorBuilder.from_descriptor(self)
        for name, value in changes.items():
            setter = getattr(builder, name, None)
            if name.startswith("_") or name in _NON_SETTERS or not callable(setter):
                raise TypeError(f"unknown Descriptor field {name!r}")
            setter(value)
        return builder.build()


_NON_SETTERS = frozenset({"build", "from_descriptor", "from_parsed"})


class DescriptorBuilder:
    """
    Mutable configuration for a Descriptor, consumed once by build().

    Every setter returns the builder so calls can be chained. Range checks
    happen in the setter itself; a rejected value never reaches the builder.
    """

    def __init__(self) -> None:
        self._label_issuer = ""
        self._param_issuer = ""
        self._account_name = ""
        self._secret = ""
        self._algorithm = DEFAULT_ALGORITHM
        self._digits = DEFAULT_DIGITS
        self._period = DEFAULT_PERIOD
        self._login_url = ""
        self._login_username = ""
        self._login_password = ""
        self._notes = ""
        self._from_uri = False
        self._built = False

    @classmethod
    def from_descriptor(cls, descriptor: Descriptor) -> "DescriptorBuilder":
        builder = cls()
        builder._label_issuer = descriptor.label_issuer
        builder._param_issuer = descriptor.param_issuer
        builder._account_name = descriptor.account_name
        builder._secret = descriptor.secret
        builder._algorithm = descriptor.algorithm
        builder._digits = descriptor.digits
        builder._period = descriptor.period
        builder._login_url = descriptor.login_url
        builder._login_username = descriptor.login_username
        builder._login_password = descriptor.login_password
        builder._notes = descriptor.notes
        return builder

    @classmethod
    def from_parsed(cls, parsed) -> "DescriptorBuilder":
        """Seed a builder from codec.ParsedUri; build() then fills placeholders."""
        builder = cls()
        builder._label_issuer = parsed.label_issuer
        builder._param_issuer = parsed.param_issuer
        builder._account_name = parsed.account_name
        builder._secret = parsed.secret
        if parsed.algorithm is not None:
            builder.algorithm(parsed.algorithm)
        if parsed.digits is not None:
            builder.digits(parsed.digits)
        if parsed.period is not None:
            builder.period(parsed.period)
        builder._from_uri = True
        return builder

    # --- setters -------------------------------------------------------------
    def label_issuer(self, issuer: str) -> "DescriptorBuilder":
        self._label_issuer = issuer or ""
        return self

    def param_issuer(self, issuer: str) -> "DescriptorBuilder":
        self._param_issuer = issuer or ""
        return self

    def issuer(self, issuer: str) -> "DescriptorBuilder":
        """Set the same issuer on the label and the parameter."""
        self._label_issuer = self._param_issuer = issuer or ""
        return self

    def account_name(self, account: str) -> "DescriptorBuilder":
        self._account_name = account or ""
        return self

    def secret(self, secret: str) -> "DescriptorBuilder":
        self._secret = secret or ""
        return self

    def algorithm(self, algorithm: Union[Algorithm, str]) -> "DescriptorBuilder":
        if not isinstance(algorithm, Algorithm):
            algorithm = Algorithm.from_name(algorithm)
        self._algorithm = algorithm
        return self

    def digits(self, digits: Union[int, str]) -> "DescriptorBuilder":
        self._digits = validate_digits(digits)
        return self

    def period(self, period: Union[int, str]) -> "DescriptorBuilder":
        self._period = validate_period(period)
        return self

    def login_url(self, url: str) -> "DescriptorBuilder":
        self._login_url = url or ""
        return self

    def login_username(self, username: str) -> "DescriptorBuilder":
        self._login_username = username or ""
        return self

    def login_password(self, password: str) -> "DescriptorBuilder":
        self._login_password = password or ""
        return self

    def notes(self, notes: str) -> "DescriptorBuilder":
        self._notes = notes or ""
        return self

    # --- finalize ------------------------------------------------------------
    def build(self, rng: Optional[random.Random] = None) -> Descriptor:
        """
        Validate and return the immutable Descriptor.

        Arguments:
            rng: random source for the placeholder issuer of a parsed record
                 that named no issuer anywhere (default: fresh local Random).

        Raises:
            MissingSecret: no secret was set or parsed.
            OtpUriError: the builder was already consumed.
        """
        if self._built:
            raise OtpUriError("builder already consumed; start a new DescriptorBuilder")
        if not self._secret:
            raise MissingSecret()

        account = self._account_name or UNKNOWN_USERNAME
        label_issuer, param_issuer = self._label_issuer, self._param_issuer
        if self._from_uri and not (label_issuer and param_issuer):
            issuer = placeholder_issuer(rng)
            logger.debug("no issuer in source URI, using placeholder %r", issuer)
            label_issuer = label_issuer or issuer
            param_issuer = param_issuer or issuer

        descriptor = Descriptor(
            secret=self._secret,
            account_name=account,
            label_issuer=label_issuer,
            param_issuer=param_issuer,
            algorithm=self._algorithm,
            digits=self._digits,
            period=self._period,
            login_url=self._login_url,
            login_username=self._login_username,
            login_password=self._login_password,
            notes=self._notes,
        )
        self._built = True
        return descriptor
