from __future__ import annotations

import hashlib

import pyotp
import pytest

from otpuri.descriptor import Algorithm, Descriptor, DescriptorBuilder
from otpuri.engine import (
    SecretEncoding,
    compute,
    compute_split,
    counter_at,
    decode_base32,
    generate_base32_secret,
    hotp,
    seconds_remaining,
    split_code,
    totp,
    verify,
)
from otpuri.errors import InvalidSecret, InvalidTimestamp, OtpUriError, UnsupportedAlgorithm

RFC_TIMES = (59, 1111111109, 1111111111, 1234567890, 2000000000, 20000000000)


def _rfc_secret(size: int) -> str:
    return ("1234567890" * 7)[:size]


def _rfc(algorithm: Algorithm, size: int) -> Descriptor:
    return (
        DescriptorBuilder()
        .secret(_rfc_secret(size))
        .algorithm(algorithm)
        .digits(8)
        .build()
    )


def test_hotp_rfc4226_appendix_d() -> None:
    """Secret and test values from appendix D of RFC 4226."""
    key = b"12345678901234567890"
    expected = [
        "755224", "287082", "359152", "969429", "338314",
        "254676", "287922", "162583", "399871", "520489",
    ]
    assert [hotp(key, c) for c in range(10)] == expected


def test_hotp_zero_pads() -> None:
    code = hotp(b"12345678901234567890", 4, digits=7)
    assert len(code) == 7
    assert code[0] == "0"


def test_hotp_rejects_negative_counter_and_unknown_algorithm() -> None:
    with pytest.raises(ValueError):
        hotp(b"k", -1)
    with pytest.raises(UnsupportedAlgorithm):
        hotp(b"k", 0, algorithm="MD5")  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "algorithm, size, expected",
    [
        (Algorithm.SHA1, 20,
         ("94287082", "07081804", "14050471", "89005924", "69279037", "65353130")),
        (Algorithm.SHA256, 32,
         ("46119246", "68084774", "67062674", "91819424", "90698825", "77737706")),
        (Algorithm.SHA512, 64,
         ("90693936", "25091201", "99943326", "93441116", "38618901", "47863826")),
    ],
)
def test_totp_rfc6238_appendix_b(algorithm: Algorithm, size: int, expected) -> None:
    """Secret and test values from appendix B of RFC 6238."""
    d = _rfc(algorithm, size)
    assert tuple(compute(d, t) for t in RFC_TIMES) == expected


def test_compute_is_deterministic() -> None:
    d = _rfc(Algorithm.SHA256, 32)
    assert {compute(d, 1234567890) for _ in range(5)} == {"91819424"}


@pytest.mark.parametrize("digits", [6, 7, 8])
def test_code_length_matches_digits(digits: int) -> None:
    d = DescriptorBuilder().secret("12345678901234567890").digits(digits).build()
    for t in range(0, 30 * 200, 30):
        code = compute(d, t)
        assert len(code) == digits
        assert code.isdigit()


def test_counter_windowing() -> None:
    ts = 1400000010
    assert counter_at(ts, 30) == counter_at(ts + 29, 30)
    assert counter_at(ts, 30) + 1 == counter_at(ts + 30, 30)
    assert counter_at(ts - 1, 30) == counter_at(ts, 30) - 1
    assert counter_at(59, 15) == 3
    assert counter_at(59.9, 60) == 0


def test_period_changes_the_step() -> None:
    d30 = _rfc(Algorithm.SHA1, 20)
    d60 = d30.evolve(period=60)
    # 59 is step 1 for 30 s and step 0 for 60 s
    assert compute(d60, 59) == hotp(b"12345678901234567890", 0, 8)
    assert compute(d30, 59) == hotp(b"12345678901234567890", 1, 8)


def test_clock_is_used_when_no_time_given() -> None:
    d = _rfc(Algorithm.SHA1, 20)
    assert compute(d, clock=lambda: 59.0) == "94287082"
    assert totp(d, clock=lambda: 59.0) == ("94287082", 1)


def test_seconds_remaining() -> None:
    assert seconds_remaining(59, 30) == 1
    assert seconds_remaining(60, 30) == 30
    assert seconds_remaining(61.5, 15) == 14


@pytest.mark.parametrize(
    "code, split",
    [("123456", "123-456"), ("1234567", "123-4567"), ("12345678", "1234-5678")],
)
def test_split_code(code: str, split: str) -> None:
    assert split_code(code) == split


def test_compute_split() -> None:
    assert compute_split(_rfc(Algorithm.SHA1, 20), 59) == "9428-7082"


def test_base32_secret_matches_pyotp() -> None:
    secret = "JBSWY3DPEHPK3PXP"
    d = DescriptorBuilder().secret(secret).build()
    for t in (0, 59, 1234567890, 2000000000):
        assert compute(d, t, encoding=SecretEncoding.BASE32) == pyotp.TOTP(secret).at(t)

    d = d.evolve(algorithm=Algorithm.SHA512, digits=8, period=60)
    expected = pyotp.TOTP(secret, digits=8, digest=hashlib.sha512, interval=60).at(1234567890)
    assert compute(d, 1234567890, encoding=SecretEncoding.BASE32) == expected


def test_raw_is_the_default_reading_of_the_secret() -> None:
    d = DescriptorBuilder().secret("JBSWY3DPEHPK3PXP").build()
    assert compute(d, 59) == hotp(b"JBSWY3DPEHPK3PXP", 1)


def test_decode_base32_is_lenient_about_case_padding_and_spaces() -> None:
    assert decode_base32("jbsw y3dp ehpk 3pxp") == decode_base32("JBSWY3DPEHPK3PXP")
    assert decode_base32("MFRGG===") == decode_base32("MFRGG") == b"abc"
    with pytest.raises(InvalidSecret):
        decode_base32("not base32!")


def test_generate_base32_secret() -> None:
    secret = generate_base32_secret()
    assert len(secret) == 32
    assert len(decode_base32(secret)) == 20


def test_verify_window() -> None:
    d = _rfc(Algorithm.SHA1, 20)
    # "94287082" belongs to step 1 (t = 30..59)
    assert verify(d, "94287082", timestamp=59, window=0)
    assert verify(d, "94287082", timestamp=89, window=1)
    assert not verify(d, "94287082", timestamp=89, window=0)
    assert not verify(d, "94287082", timestamp=150, window=1)
    assert not verify(d, "00000000", timestamp=10, window=1)


def test_instants_before_the_epoch_are_rejected() -> None:
    d = _rfc(Algorithm.SHA1, 20)
    with pytest.raises(InvalidTimestamp) as exc:
        compute(d, -1)
    assert exc.value.field == "timestamp"
    with pytest.raises(InvalidTimestamp):
        totp(d, clock=lambda: -100.0)
    with pytest.raises(InvalidTimestamp):
        verify(d, "94287082", timestamp=-100)


def test_negative_window_is_rejected() -> None:
    d = _rfc(Algorithm.SHA1, 20)
    with pytest.raises(OtpUriError):
        verify(d, "94287082", timestamp=59, window=-1)
