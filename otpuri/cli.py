#!/usr/bin/env python3
"""
cli.py — Command line front end for otpuri.

Subcommands:
- parse  : show the fields of an otpauth URI
- code   : print the current (or a given time's) TOTP code for a URI
- uri    : build a canonical otpauth URI from flags
- new    : create a record with a fresh random secret
- verify : check a code against a URI
- qr     : print a URI as a terminal QR code

Secrets are read as base32 (what authenticator apps use) unless --raw-secret.
"""

import argparse
import json
import logging
import sys
import time

import qrcode

from . import codec, engine
from .descriptor import (
    DEFAULT_DIGITS,
    DEFAULT_PERIOD,
    Algorithm,
    Assume,
    DescriptorBuilder,
)
from .errors import OtpUriError


def _assume(args) -> Assume:
    return Assume(args.assume)


def _encoding(args) -> engine.SecretEncoding:
    return engine.SecretEncoding.RAW if args.raw_secret else engine.SecretEncoding.BASE32


# --- CLI command handlers ---
def cmd_parse(args):
    d = codec.parse(args.uri, assume=_assume(args))
    if args.json:
        print(json.dumps(d.to_dict(), indent=2))
        return
    print(f"[*] issuer (label) : {d.label_issuer}")
    print(f"    issuer (param) : {d.param_issuer}")
    print(f"    account        : {d.account_name}")
    print(f"    algorithm      : {d.algorithm.value}")
    print(f"    digits         : {d.digits}")
    print(f"    period         : {d.period}")


def cmd_code(args):
    d = codec.parse(args.uri, assume=_assume(args))
    encoding = _encoding(args)
    show = engine.split_code if args.split else str

    if not args.watch:
        code, remaining = engine.totp(d, args.time, encoding=encoding)
        print(show(code))
        logging.getLogger(__name__).debug("code valid for %ss", remaining)
        return

    print(f"[{d.issuer}] Press Ctrl+C to quit. {d.digits}-digit TOTP every {d.period}s...\n")
    last_code = None
    try:
        while True:
            code, remaining = engine.totp(d, encoding=encoding)
            if code != last_code:
                print(f"TOTP ({d.digits}d): {show(code)}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end='\r', flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")


def _builder_from_args(args) -> DescriptorBuilder:
    return (
        DescriptorBuilder()
        .issuer(args.issuer)
        .account_name(args.account)
        .algorithm(args.algorithm)
        .digits(args.digits)
        .period(args.period)
    )


def _print_uri(d, decoded: bool) -> None:
    print(codec.serialize_decoded(d) if decoded else codec.serialize(d))


def cmd_uri(args):
    d = _builder_from_args(args).secret(args.secret).build()
    _print_uri(d, args.decoded)


def cmd_new(args):
    secret = engine.generate_base32_secret()
    d = _builder_from_args(args).secret(secret).build()
    print(f"[*] secret: {secret}")
    _print_uri(d, args.decoded)


def cmd_verify(args):
    d = codec.parse(args.uri, assume=_assume(args))
    ok = engine.verify(d, args.code, window=args.window, timestamp=args.time,
                       encoding=_encoding(args))
    if ok:
        print(f"[{d.issuer}] [+] TOTP code is VALID")
    else:
        print(f"[{d.issuer}] [-] TOTP code is INVALID")
    return 0 if ok else 1


def cmd_qr(args):
    d = codec.parse(args.uri, assume=_assume(args))
    qr = qrcode.QRCode(border=2)
    qr.add_data(codec.serialize(d))
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def cmd_help(args):
    print("'otpuri -h' for help.")


# --- Argparse builder ---
def _add_uri_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("uri", help="otpauth:// URI (quote it in the shell)")
    p.add_argument("--assume", choices=[a.value for a in Assume], default=Assume.USERNAME.value,
                   help="Where a bare single-word label goes")


def _add_field_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--issuer", default="", help="Issuer for label and parameter")
    p.add_argument("--account", default="", help="Account name for the label")
    p.add_argument("--algorithm", choices=[a.value for a in Algorithm], default=Algorithm.SHA1.value)
    p.add_argument("--digits", type=int, default=DEFAULT_DIGITS, help="6, 7 or 8")
    p.add_argument("--period", type=int, default=DEFAULT_PERIOD, help="15, 30 or 60 seconds")
    p.add_argument("--decoded", action="store_true", help="Print without percent-encoding")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="otpuri", description="otpauth URI parser and TOTP generator")
    p.add_argument("--verbose", action="store_true", help="Debug logging to stderr")
    p.add_argument("--raw-secret", action="store_true",
                   help="Use the secret text itself as HMAC key instead of base32-decoding it")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # parse
    pp = sub.add_parser("parse", help="Show the fields of an otpauth URI")
    _add_uri_args(pp)
    pp.add_argument("--json", action="store_true", help="Print fields as JSON")
    pp.set_defaults(func=cmd_parse)

    # code
    pc = sub.add_parser("code", help="Print the TOTP code for a URI")
    _add_uri_args(pc)
    pc.add_argument("--time", type=float, help="Epoch seconds (default: now)")
    pc.add_argument("--split", action="store_true", help="Print as 123-456")
    pc.add_argument("--watch", action="store_true", help="Keep printing codes in real time")
    pc.set_defaults(func=cmd_code)

    # uri
    pu = sub.add_parser("uri", help="Build a canonical otpauth URI")
    pu.add_argument("--secret", required=True)
    _add_field_args(pu)
    pu.set_defaults(func=cmd_uri)

    # new
    pn = sub.add_parser("new", help="New record with a random base32 secret")
    _add_field_args(pn)
    pn.set_defaults(func=cmd_new)

    # verify
    pv = sub.add_parser("verify", help="Verify a TOTP code against a URI")
    _add_uri_args(pv)
    pv.add_argument("--code", required=True, help="OTP code to verify")
    pv.add_argument("--window", type=int, default=1, help="Allowed +/- step window")
    pv.add_argument("--time", type=float, help="Epoch seconds (default: now)")
    pv.set_defaults(func=cmd_verify)

    # qr
    pq = sub.add_parser("qr", help="Print the canonical URI as a terminal QR code")
    _add_uri_args(pq)
    pq.set_defaults(func=cmd_qr)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        rc = args.func(args)
    except OtpUriError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 2
    return rc or 0


if __name__ == "__main__":
    sys.exit(main())
