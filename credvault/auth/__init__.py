# Authentication Module
"""
Credential verification primitives:
- Password hasher interface and plaintext hasher - hasher.py
- bcrypt hashing (OpenBSD format, 2a/2y/2b) - bcrypt_digest.py
- PBKDF2 hashing (PHC string format) - pbkdf2.py
- HOTP/TOTP one-time passwords (RFC 4226, RFC 6238) - totp.py

Security features:
- Cryptographically secure random salts
- Constant-time comparison for checksum, key and code verification
- Malformed bcrypt digests raise; malformed PBKDF2 digests verify as False
"""

from .errors import (
    BcryptError,
    InvalidCost,
    InvalidSalt,
    InvalidHash,
    HashFailure,
    InternalError,
)

from .hasher import (
    PasswordHasher,
    PlaintextHasher,
)

from .bcrypt_digest import (
    BcryptDigest,
    BcryptHasher,
    Revision,
    hash_password,
    verify_password,
)

from .pbkdf2 import (
    PBKDF2Hasher,
    PBKDF2Digest,
    HashFunction,
    parse_digest,
    format_digest,
)

from .totp import (
    HOTP,
    TOTP,
    OTPDigest,
    OTPDigits,
    hotp,
    totp,
    generate_secret,
    secret_to_base32,
    base32_to_secret,
)

__all__ = [
    # Errors
    'BcryptError',
    'InvalidCost',
    'InvalidSalt',
    'InvalidHash',
    'HashFailure',
    'InternalError',
    # Hashers
    'PasswordHasher',
    'PlaintextHasher',
    'BcryptDigest',
    'BcryptHasher',
    'Revision',
    'hash_password',
    'verify_password',
    'PBKDF2Hasher',
    'PBKDF2Digest',
    'HashFunction',
    'parse_digest',
    'format_digest',
    # OTP
    'HOTP',
    'TOTP',
    'OTPDigest',
    'OTPDigits',
    'hotp',
    'totp',
    'generate_secret',
    'secret_to_base32',
    'base32_to_secret',
]
