"""
credvault - Command Line Entry Point

Hash and verify passwords, and print one-time passwords.

    credvault hash-password --scheme bcrypt --cost 10 "hunter2"
    credvault verify-password "hunter2" '$2b$10$...'
    credvault hotp --secret GEZDGNBVGY3TQOJQ --counter 1
    credvault totp --secret GEZDGNBVGY3TQOJQ --digits 8 --range 1

Exit codes: 0 success / valid, 1 invalid password or code, 2 usage or
format error.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .auth.bcrypt_digest import BcryptHasher, DEFAULT_COST
from .auth.errors import BcryptError
from .auth.hasher import PlaintextHasher
from .auth.pbkdf2 import PBKDF2Hasher, HashFunction
from .auth.totp import HOTP, TOTP, OTPDigest, TOTP_TIME_STEP, base32_to_secret


EXIT_OK = 0
EXIT_INVALID = 1
EXIT_ERROR = 2

SCHEMES = ('bcrypt', 'pbkdf2', 'plaintext')


def build_hasher(args: argparse.Namespace):
    """Construct the password hasher selected on the command line."""
    if args.scheme == 'bcrypt':
        return BcryptHasher(cost=args.cost)
    if args.scheme == 'pbkdf2':
        return PBKDF2Hasher(args.algorithm, iterations=args.iterations)
    return PlaintextHasher()


def _add_hasher_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--scheme', choices=SCHEMES, default='bcrypt',
                        help="password scheme (default: bcrypt)")
    parser.add_argument('--cost', type=int, default=DEFAULT_COST,
                        help="bcrypt cost, 4-31 (default: %(default)s)")
    parser.add_argument('--algorithm', default=HashFunction.SHA256.value,
                        choices=[f.value for f in HashFunction],
                        help="PBKDF2 hash function (default: %(default)s)")
    parser.add_argument('--iterations', type=int, default=None,
                        help="PBKDF2 iterations (default: OWASP recommendation)")


def _add_otp_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--secret', required=True, help="base32 shared secret")
    parser.add_argument('--digits', type=int, choices=(6, 8), default=6)
    parser.add_argument('--digest', default=OTPDigest.SHA1.value,
                        choices=[d.value for d in OTPDigest])


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='credvault',
        description="Password hashing and one-time password tool",
    )
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="log security events to stderr")
    commands = parser.add_subparsers(dest='command', required=True)

    hash_cmd = commands.add_parser('hash-password', help="hash a password")
    _add_hasher_options(hash_cmd)
    hash_cmd.add_argument('password')

    verify_cmd = commands.add_parser('verify-password', help="verify a password")
    _add_hasher_options(verify_cmd)
    verify_cmd.add_argument('password')
    verify_cmd.add_argument('digest')

    hotp_cmd = commands.add_parser('hotp', help="print an HOTP code")
    _add_otp_options(hotp_cmd)
    hotp_cmd.add_argument('--counter', type=int, required=True)

    totp_cmd = commands.add_parser('totp', help="print TOTP codes")
    _add_otp_options(totp_cmd)
    totp_cmd.add_argument('--time', type=float, default=None,
                          help="Unix time (default: now)")
    totp_cmd.add_argument('--interval', type=int, default=TOTP_TIME_STEP)
    totp_cmd.add_argument('--range', type=int, default=0, dest='window',
                          help="also print codes for N steps on each side")

    return parser


def _run(args: argparse.Namespace) -> int:
    if args.command == 'hash-password':
        print(build_hasher(args).hash(args.password).decode('ascii'))
        return EXIT_OK

    if args.command == 'verify-password':
        valid = build_hasher(args).verify(args.password, args.digest)
        print("valid" if valid else "invalid")
        return EXIT_OK if valid else EXIT_INVALID

    secret = base32_to_secret(args.secret)

    if args.command == 'hotp':
        print(HOTP(secret, args.digest, args.digits).generate(args.counter))
        return EXIT_OK

    generator = TOTP(secret, args.digest, args.digits, args.interval)
    for code in generator.generate_range(args.time, args.window):
        print(code)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for credvault."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        )

    try:
        return _run(args)
    except (BcryptError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
