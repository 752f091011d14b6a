from __future__ import annotations

import json

import pyotp

from otpuri.cli import build_parser, main
from otpuri.codec import parse

RFC_URI = "otpauth://totp/RFC:tester?secret=12345678901234567890&digits=8&issuer=RFC"
B32_URI = "otpauth://totp/Acme:bob?secret=JBSWY3DPEHPK3PXP&issuer=Acme"


def test_no_subcommand_prints_hint(capsys) -> None:
    assert main([]) == 0
    assert "-h" in capsys.readouterr().out


def test_parse_json(capsys) -> None:
    assert main(["parse", "otpauth://totp/bob(Acme)?secret=ABC", "--json"]) == 0
    fields = json.loads(capsys.readouterr().out)
    assert fields["label_issuer"] == "Acme"
    assert fields["param_issuer"] == "Acme"
    assert fields["account_name"] == "bob"
    assert fields["algorithm"] == "SHA1"


def test_parse_assume_issuer(capsys) -> None:
    assert main(["parse", "otpauth://totp/Acme?secret=ABC", "--assume", "issuer"]) == 0
    out = capsys.readouterr().out
    assert "issuer (label) : Acme" in out
    assert "account        : UnknownUsername" in out


def test_code_raw_secret(capsys) -> None:
    assert main(["--raw-secret", "code", RFC_URI, "--time", "59"]) == 0
    assert capsys.readouterr().out.strip() == "94287082"


def test_code_split(capsys) -> None:
    assert main(["--raw-secret", "code", RFC_URI, "--time", "59", "--split"]) == 0
    assert capsys.readouterr().out.strip() == "9428-7082"


def test_code_before_epoch_is_reported(capsys) -> None:
    assert main(["--raw-secret", "code", RFC_URI, "--time=-100"]) == 2
    assert "[!]" in capsys.readouterr().err


def test_code_base32_by_default(capsys) -> None:
    assert main(["code", B32_URI, "--time", "1234567890"]) == 0
    assert capsys.readouterr().out.strip() == pyotp.TOTP("JBSWY3DPEHPK3PXP").at(1234567890)


def test_uri_builds_canonical_form(capsys) -> None:
    rc = main(["uri", "--secret", "ABC", "--issuer", "Acme", "--account", "bob"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == (
        "otpauth://totp/Acme:bob?secret=ABC&issuer=Acme&algorithm=SHA1&digits=6&period=30"
    )


def test_uri_decoded(capsys) -> None:
    rc = main(["uri", "--secret", "ABC", "--issuer", "Acme Co", "--account", "bob", "--decoded"])
    assert rc == 0
    assert capsys.readouterr().out.strip().startswith("otpauth://totp/Acme Co:bob?")


def test_invalid_digits_exit_status(capsys) -> None:
    assert main(["uri", "--secret", "ABC", "--digits", "9"]) == 2
    assert "[!]" in capsys.readouterr().err


def test_not_an_otp_uri_exit_status(capsys) -> None:
    assert main(["parse", "https://example.com/?secret=ABC"]) == 2
    assert "not an otpauth URI" in capsys.readouterr().err


def test_new_generates_parsable_uri(capsys) -> None:
    assert main(["new", "--issuer", "Acme", "--account", "bob"]) == 0
    first, second = capsys.readouterr().out.strip().splitlines()
    secret = first.split(": ", 1)[1]
    d = parse(second)
    assert d.secret == secret
    assert d.issuer == "Acme"
    assert d.account_name == "bob"


def test_verify(capsys) -> None:
    assert main(["--raw-secret", "verify", RFC_URI, "--code", "94287082", "--time", "59"]) == 0
    assert "VALID" in capsys.readouterr().out
    assert main(["--raw-secret", "verify", RFC_URI, "--code", "94287082", "--time", "150"]) == 1
    assert "INVALID" in capsys.readouterr().out


def test_qr_prints_something(capsys) -> None:
    assert main(["qr", B32_URI]) == 0
    assert len(capsys.readouterr().out.splitlines()) > 10


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["code", B32_URI])
    assert args.assume == "username"
    assert args.time is None
    assert not args.raw_secret
