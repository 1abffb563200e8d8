#!/usr/bin/env python3
"""
otp_cli.py — command-line front end for otpkey.

Subcommands:
- init   : create a secret, print otpauth URIs (optionally write a QR image)
- totp   : show the TOTP code for a key
- hotp   : show the HOTP code for a key
- uri    : print the parameters of an otpauth URI / QR image
- qr     : encode a URI into a QR image, or decode one
- verify : check a TOTP / HOTP code (exit status 0 = valid, 1 = invalid)

A key comes from exactly one of --secret, --uri or --qr. Nothing is
persisted; the HOTP counter must be supplied by the caller.
"""

import argparse
import logging
import sys
import time

from . import otp_core, qr
from .errors import OTPError, UnsupportedType
from .hmac_type import HMACType
from .keys import HOTPKey, TOTPKey, otpauth_from_qr_code, otpauth_from_uri
from .uri import KeyType, deserialize

logger = logging.getLogger(__name__)


# --- Key loading -----------------------------------------------------------
def _load_key(args, key_type: KeyType):
    """Build a key of `key_type` from --secret / --uri / --qr plus overrides."""
    if args.secret:
        if key_type is KeyType.HOTP:
            key = HOTPKey(key=args.secret)
        else:
            key = TOTPKey(key=args.secret)
    elif args.uri:
        key = otpauth_from_uri(args.uri)
    else:
        key = otpauth_from_qr_code(args.qr)

    if key.get_type() is not key_type:
        raise UnsupportedType(f"expected a {key_type.value} key, got {key.get_type().value}")

    if getattr(args, "digits", None):
        key.digits = otp_core.check_digits(args.digits)
    if getattr(args, "algorithm", None):
        key.hmac_type = HMACType.from_name(args.algorithm)
    if key_type is KeyType.TOTP and getattr(args, "period", None):
        key.time_step = otp_core.check_time_step(args.period)
    if key_type is KeyType.HOTP and getattr(args, "counter", None) is not None:
        key.counter = otp_core.check_counter(args.counter)
    logger.debug("loaded %s key %r (issuer=%r, %s, %d digits)",
                 key_type.value, key.name, key.issuer, key.hmac_type.value, key.digits)
    return key


# --- CLI command handlers --------------------------------------------------
def cmd_init(args):
    secret = otp_core.generate_base32_secret()
    totp_key = TOTPKey(
        key=secret, name=args.account, issuer=args.issuer,
        digits=args.digits, time_step=args.period, hmac_type=args.algorithm,
    )
    hotp_key = HOTPKey(
        key=secret, name=args.account, issuer=args.issuer,
        digits=args.digits, hmac_type=args.algorithm,
    )
    print("[*] otpauth URIs (import into authenticator apps):")
    print("    TOTP:", totp_key.to_uri())
    print("    HOTP:", hotp_key.to_uri())
    if args.qr:
        totp_key.to_qr_code(args.qr, size=args.size)
        print(f"[*] TOTP QR code written to {args.qr}")
    return 0


def cmd_totp(args):
    key = _load_key(args, KeyType.TOTP)
    if not args.watch:
        now = args.time if args.time is not None else int(time.time())
        print(f"TOTP ({key.digits}d): {key.get_code(now)}  (valid ~{key.time_remaining(now):2d}s)")
        return 0

    print(f"Press Ctrl+C to quit. Generating {key.digits}-digit TOTP every {key.time_step}s...\n")
    last_code = None
    try:
        while True:
            now = int(time.time())
            code = key.get_code(now)
            remaining = key.time_remaining(now)
            if code != last_code:
                print(f"TOTP ({key.digits}d): {code}  (valid ~{remaining:2d}s)")
                last_code = code
            else:
                print(f".. {remaining:2d}s left", end="\r", flush=True)
            time.sleep(1)
    except KeyboardInterrupt:
        print("\nBye.")
    return 0


def cmd_hotp(args):
    key = _load_key(args, KeyType.HOTP)
    print(f"HOTP({key.digits}d, counter={key.counter}): {key.get_code()}")
    return 0


def cmd_uri(args):
    text = args.uri if args.uri else qr.read_qr_code(args.qr)
    record = deserialize(text)
    print(f"type:      {record.key_type.value}")
    print(f"issuer:    {record.issuer or ''}")
    print(f"name:      {record.name}")
    print(f"secret:    {record.secret}")
    print(f"algorithm: {record.algorithm.value}")
    print(f"digits:    {record.digits}")
    if record.key_type is KeyType.HOTP:
        print(f"counter:   {record.counter}")
    else:
        print(f"period:    {record.period}")
    return 0


def cmd_qr_encode(args):
    qr.write_qr_code(args.uri, args.out, size=args.size)
    print(f"[*] QR code written to {args.out}")
    return 0


def cmd_qr_decode(args):
    print(qr.read_qr_code(args.path))
    return 0


def cmd_verify_totp(args):
    key = _load_key(args, KeyType.TOTP)
    if key.verify(args.code, timestamp=args.time, window=args.window):
        print("[+] TOTP code is VALID")
        return 0
    print("[-] TOTP code is INVALID")
    return 1


def cmd_verify_hotp(args):
    key = _load_key(args, KeyType.HOTP)
    if key.verify(args.code, look_ahead=args.look_ahead):
        print(f"[+] HOTP code is VALID (next counter = {key.counter})")
        return 0
    print("[-] HOTP code is INVALID")
    return 1


def cmd_help(args):
    print("'otpkey -h' for help.")
    return 0


# --- Argparse builder ------------------------------------------------------
def _add_source_args(p: argparse.ArgumentParser) -> None:
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--secret", help="Base32 secret")
    src.add_argument("--uri", help="otpauth:// URI")
    src.add_argument("--qr", help="Path to a QR image holding an otpauth:// URI")


def _add_param_args(p: argparse.ArgumentParser, period: bool = False, counter: bool = False) -> None:
    p.add_argument("--digits", type=int, help="Override number of digits")
    p.add_argument("--algorithm", type=str.upper, choices=[t.value for t in HMACType],
                   help="Override HMAC algorithm")
    if period:
        p.add_argument("--period", type=int, help="Override TOTP period (seconds)")
    if counter:
        p.add_argument("--counter", type=int, help="HOTP counter")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="otpkey", description="HOTP/TOTP codes, otpauth URIs and QR codes")
    p.add_argument("--verbose", action="store_true", help="Verbose (debug) logging")
    sub = p.add_subparsers(dest="cmd")
    p.set_defaults(func=cmd_help)

    # init
    pi = sub.add_parser("init", help="Generate a secret and print otpauth URIs")
    pi.add_argument("--account", default="user@example", help="Account name for the URI label")
    pi.add_argument("--issuer", default="otpkey", help="Issuer for the URI label")
    pi.add_argument("--digits", type=int, default=otp_core.DEFAULT_DIGITS, help="Number of OTP digits")
    pi.add_argument("--period", type=int, default=otp_core.DEFAULT_TIME_STEP, help="TOTP time step (seconds)")
    pi.add_argument("--algorithm", type=str.upper, default=HMACType.SHA1.value,
                    choices=[t.value for t in HMACType], help="HMAC algorithm")
    pi.add_argument("--qr", help="Also write the TOTP URI as a QR image to this path")
    pi.add_argument("--size", type=int, default=qr.QR_IMAGE_SIZE, help="QR image size (pixels)")
    pi.set_defaults(func=cmd_init)

    # totp
    pt = sub.add_parser("totp", help="Show the TOTP code")
    _add_source_args(pt)
    _add_param_args(pt, period=True)
    pt.add_argument("--time", type=int, help="Unix time to compute the code for (default: now)")
    pt.add_argument("--watch", action="store_true", help="Keep refreshing the code until Ctrl+C")
    pt.set_defaults(func=cmd_totp)

    # hotp
    ph = sub.add_parser("hotp", help="Show the HOTP code for a counter")
    _add_source_args(ph)
    _add_param_args(ph, counter=True)
    ph.set_defaults(func=cmd_hotp)

    # uri
    pu = sub.add_parser("uri", help="Print the parameters of an otpauth URI")
    src = pu.add_mutually_exclusive_group(required=True)
    src.add_argument("--uri", help="otpauth:// URI")
    src.add_argument("--qr", help="Path to a QR image")
    pu.set_defaults(func=cmd_uri)

    # qr
    pq = sub.add_parser("qr", help="Encode / decode QR images")
    sub_q = pq.add_subparsers(dest="qr_cmd", required=True)
    pqe = sub_q.add_parser("encode", help="Write a URI as a QR image")
    pqe.add_argument("--uri", required=True, help="Text to encode")
    pqe.add_argument("--out", required=True, help="Output image path (format from extension)")
    pqe.add_argument("--size", type=int, default=qr.QR_IMAGE_SIZE, help="Image size (pixels)")
    pqe.set_defaults(func=cmd_qr_encode)
    pqd = sub_q.add_parser("decode", help="Print the text held by a QR image")
    pqd.add_argument("path", help="Image path")
    pqd.set_defaults(func=cmd_qr_decode)

    # verify
    pv = sub.add_parser("verify", help="Verify an OTP code (TOTP or HOTP)")
    sub_v = pv.add_subparsers(dest="verify_type", required=True)

    pvt = sub_v.add_parser("totp", help="Verify a TOTP code")
    _add_source_args(pvt)
    _add_param_args(pvt, period=True)
    pvt.add_argument("--code", required=True, help="OTP code to verify")
    pvt.add_argument("--time", type=int, help="Unix time to verify at (default: now)")
    pvt.add_argument("--window", type=int, default=1, help="Allowed +/- step window")
    pvt.set_defaults(func=cmd_verify_totp)

    pvh = sub_v.add_parser("hotp", help="Verify a HOTP code")
    _add_source_args(pvh)
    _add_param_args(pvh, counter=True)
    pvh.add_argument("--code", required=True, help="OTP code to verify")
    pvh.add_argument("--look-ahead", type=int, default=0, help="Allowed counter look-ahead")
    pvh.set_defaults(func=cmd_verify_hotp)

    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except (OTPError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
