"""
Primitive Crypto Provider

Single seam through which every hasher and OTP generator reaches the
underlying cryptographic primitives.

Capabilities:
- HMAC (SHA-1, SHA-256, SHA-384, SHA-512)
- PBKDF2 key derivation (via the cryptography library)
- bcrypt's blowfish-based hash (via the bcrypt library)
- Cryptographically secure random bytes (secrets)

Tests substitute a subclass to simulate primitive failures.
"""

import hmac
import hashlib
import secrets

import bcrypt
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.backends import default_backend

from . import radix64


# Size of the working buffer the bcrypt primitive writes into
BCRYPT_BUFFER_SIZE = 128

# Only the first 72 key bytes take part in the blowfish key schedule
BCRYPT_MAX_KEY_BYTES = 72

# "$2b$12$" prefix and radix-64 seed of a full salt
BCRYPT_SALT_PREFIX_LENGTH = 7
BCRYPT_SEED_LENGTH = 22

# Hash algorithm names -> cryptography hash classes
_PBKDF2_ALGORITHMS = {
    'sha256': hashes.SHA256,
    'sha384': hashes.SHA384,
    'sha512': hashes.SHA512,
    'sha1': hashes.SHA1,
    'sha224': hashes.SHA224,
    'md5': hashes.MD5,
}

# Hash algorithm names -> hashlib constructors
_HMAC_ALGORITHMS = {
    'sha1': hashlib.sha1,
    'sha256': hashlib.sha256,
    'sha384': hashlib.sha384,
    'sha512': hashlib.sha512,
}


def canonical_salt(salt: bytes) -> bytes:
    """
    Clear the unused low bits of a full salt's last seed symbol.

    The blowfish setup only reads the 16 decoded seed bytes, so
    "$2b$04$" + "9" * 22 and "$2b$04$" + "9" * 21 + "u" hash identically.
    The bcrypt library rejects the first form; this re-encodes it as the
    second. Anything that is not a full salt is returned unchanged.
    """
    if len(salt) != BCRYPT_SALT_PREFIX_LENGTH + BCRYPT_SEED_LENGTH:
        return salt
    prefix, seed = salt[:BCRYPT_SALT_PREFIX_LENGTH], salt[BCRYPT_SALT_PREFIX_LENGTH:]
    try:
        seed_bytes = radix64.decode(seed.decode('ascii'))
    except ValueError:
        return salt
    return prefix + radix64.encode(seed_bytes).encode('ascii')


class CryptoProvider:
    """
    Default provider backed by hmac/secrets, cryptography and bcrypt.

    Stateless; a single instance is shared by every hasher.
    """

    def hmac(self, key: bytes, message: bytes, algorithm: str) -> bytes:
        """
        Compute HMAC(key, message).

        Args:
            key: Secret key of any length
            message: Message to authenticate
            algorithm: 'sha1', 'sha256', 'sha384' or 'sha512'

        Returns:
            Raw HMAC digest
        """
        try:
            digestmod = _HMAC_ALGORITHMS[algorithm]
        except KeyError:
            raise ValueError(f"Unsupported HMAC algorithm: {algorithm}") from None
        return hmac.new(key, message, digestmod).digest()

    def pbkdf2(self, password: bytes, salt: bytes, algorithm: str,
               iterations: int, length: int) -> bytes:
        """
        Derive a key with PBKDF2-HMAC.

        Args:
            password: Password bytes
            salt: Salt bytes
            algorithm: One of sha256, sha384, sha512, sha1, sha224, md5
            iterations: Iteration count (> 0)
            length: Output length in bytes

        Returns:
            Derived key of `length` bytes
        """
        try:
            algorithm_cls = _PBKDF2_ALGORITHMS[algorithm]
        except KeyError:
            raise ValueError(f"Unsupported PBKDF2 algorithm: {algorithm}") from None

        kdf = PBKDF2HMAC(
            algorithm=algorithm_cls(),
            length=length,
            salt=salt,
            iterations=iterations,
            backend=default_backend()
        )
        return kdf.derive(password)

    def bcrypt(self, plaintext: bytes, salt: bytes) -> bytearray:
        """
        Run the raw bcrypt primitive.

        The key is read like a C string: it ends at the first NUL byte and
        only the first 72 bytes are used.

        Args:
            plaintext: Password bytes
            salt: 29-byte salt with a 2a or 2b revision

        Returns:
            Fixed 128-byte buffer holding the NUL-terminated 60-byte digest

        Raises:
            ValueError: If the primitive rejects its input
        """
        key = plaintext.split(b'\x00', 1)[0][:BCRYPT_MAX_KEY_BYTES]
        digest = bcrypt.hashpw(key, canonical_salt(salt))

        buffer = bytearray(BCRYPT_BUFFER_SIZE)
        if len(digest) >= BCRYPT_BUFFER_SIZE:
            raise ValueError("bcrypt output does not fit the digest buffer")
        buffer[:len(digest)] = digest
        return buffer

    def random_bytes(self, count: int) -> bytes:
        """Return `count` bytes from the OS CSPRNG."""
        return secrets.token_bytes(count)


# Module-level provider instance
default_provider = CryptoProvider()
