"""
PBKDF2 Password Hashing

Implements PBKDF2-HMAC password hashing with a PHC-style string format
compatible with passlib's pbkdf2_<digest> hashes:

    $pbkdf2-<alg>$<iterations>$<base64 salt>$<base64 key>

Features:
- SHA-256 / SHA-384 / SHA-512, plus legacy SHA-1, SHA-224 and MD5
- OWASP-recommended iteration defaults per hash function
- Self-describing digests: verification uses the parameters stored in
  the digest, not the hasher's defaults
- Constant-time key comparison

Malformed digests never raise: verify() returns False for them.

Reference:
- https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html#pbkdf2
"""

import base64
import binascii
import hmac
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..core_crypto.provider import CryptoProvider, default_provider
from ..integration.event_logger import EventType, log_event
from .hasher import BytesLike, to_bytes, to_text


logger = logging.getLogger(__name__)

PBKDF2_PREFIX = 'pbkdf2-'
PBKDF2_SALT_BYTES = 16    # 128-bit salt
PBKDF2_FIELD_COUNT = 4
PBKDF2_MAX_ITERATIONS = 2 ** 32 - 1    # largest count the KDF backend accepts

_ITERATIONS_RE = re.compile(r'[0-9]+')


class HashFunction(Enum):
    """Pseudo-random functions supported for PBKDF2 (value = PHC identifier)."""
    SHA256 = 'sha256'
    SHA384 = 'sha384'
    SHA512 = 'sha512'
    SHA1 = 'sha1'
    SHA224 = 'sha224'
    MD5 = 'md5'


# OWASP recommendations; weaker functions get more iterations
PBKDF2_DEFAULT_ITERATIONS = {
    HashFunction.SHA256: 600_000,
    HashFunction.SHA384: 400_000,
    HashFunction.SHA512: 210_000,
    HashFunction.SHA1: 1_300_000,
    HashFunction.SHA224: 800_000,
    HashFunction.MD5: 1_600_000,
}

# Native digest sizes in bytes
PBKDF2_OUTPUT_BYTES = {
    HashFunction.SHA256: 32,
    HashFunction.SHA384: 48,
    HashFunction.SHA512: 64,
    HashFunction.SHA224: 28,
    HashFunction.SHA1: 20,
    HashFunction.MD5: 16,
}


@dataclass(frozen=True)
class PBKDF2Digest:
    """Parsed form of a PBKDF2 PHC string."""
    algorithm: HashFunction
    iterations: int
    salt: bytes
    key: bytes


def format_digest(digest: PBKDF2Digest) -> str:
    """
    Serialize a digest as `$pbkdf2-<alg>$<iterations>$<b64salt>$<b64key>`.

    Base64 fields use the standard RFC 4648 alphabet with padding.
    """
    b64_salt = base64.b64encode(digest.salt).decode('ascii')
    b64_key = base64.b64encode(digest.key).decode('ascii')
    return (
        f"${PBKDF2_PREFIX}{digest.algorithm.value}"
        f"${digest.iterations}${b64_salt}${b64_key}"
    )


def parse_digest(digest: str) -> Optional[PBKDF2Digest]:
    """
    Parse a PHC string.

    Args:
        digest: String of the form `$pbkdf2-<alg>$<iterations>$<salt>$<key>`

    Returns:
        PBKDF2Digest, or None if any field is malformed
    """
    parts = digest.split('$')
    # The leading "$" produces an empty first token
    if parts and parts[0] == '':
        parts = parts[1:]
    if len(parts) != PBKDF2_FIELD_COUNT or not all(parts):
        return None

    alg_part, iterations_part, salt_part, key_part = parts

    # Algorithm
    if not alg_part.startswith(PBKDF2_PREFIX):
        return None
    try:
        algorithm = HashFunction(alg_part[len(PBKDF2_PREFIX):])
    except ValueError:
        return None

    # Iterations (plain ASCII digits, in range)
    if not _ITERATIONS_RE.fullmatch(iterations_part) \
            or len(iterations_part) > len(str(PBKDF2_MAX_ITERATIONS)):
        return None
    iterations = int(iterations_part)
    if not 0 < iterations <= PBKDF2_MAX_ITERATIONS:
        return None

    # Salt and key
    try:
        salt = base64.b64decode(salt_part, validate=True)
        key = base64.b64decode(key_part, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not salt or not key:
        return None

    return PBKDF2Digest(algorithm=algorithm, iterations=iterations, salt=salt, key=key)


class PBKDF2Hasher:
    """
    PasswordHasher backed by PBKDF2-HMAC.

    The configured hash function and iteration count are used for new
    hashes only. Verification takes iterations, salt and key length from
    the digest, but rejects digests made with a different hash function.

    Example:
        >>> hasher = PBKDF2Hasher(HashFunction.SHA256, iterations=1000)
        >>> digest = hasher.hash("secretPassword123")
        >>> digest.startswith(b"$pbkdf2-sha256$1000$")
        True
        >>> hasher.verify("secretPassword123", digest)
        True
    """

    scheme = 'pbkdf2'

    def __init__(self,
                 pseudo_random_function: Union[HashFunction, str] = HashFunction.SHA256,
                 iterations: Optional[int] = None,
                 provider: Optional[CryptoProvider] = None):
        """
        Args:
            pseudo_random_function: Hash function (enum member or identifier
                such as "sha512")
            iterations: Iteration count; OWASP default for the function if None
            provider: Primitive crypto provider (default provider if None)

        Raises:
            ValueError: If the hash function is unsupported or iterations
                is not positive
        """
        try:
            self._algorithm = HashFunction(pseudo_random_function)
        except ValueError:
            raise ValueError(
                f"Unsupported hash function: {pseudo_random_function!r}"
            ) from None

        if iterations is None:
            iterations = PBKDF2_DEFAULT_ITERATIONS[self._algorithm]
        if isinstance(iterations, bool) or not isinstance(iterations, int) \
                or not 0 < iterations <= PBKDF2_MAX_ITERATIONS:
            raise ValueError(
                f"Iterations must be an integer between 1 and {PBKDF2_MAX_ITERATIONS}"
            )

        self._iterations = iterations
        self._output_byte_count = PBKDF2_OUTPUT_BYTES[self._algorithm]
        self._provider = provider or default_provider

    @property
    def algorithm(self) -> HashFunction:
        """Hash function used for new hashes."""
        return self._algorithm

    @property
    def iterations(self) -> int:
        """Iteration count used for new hashes."""
        return self._iterations

    @property
    def output_byte_count(self) -> int:
        """Derived key length for new hashes."""
        return self._output_byte_count

    def hash(self, password: BytesLike) -> bytes:
        """
        Hash a password with a fresh random salt.

        Args:
            password: Password to hash

        Returns:
            PHC string as ASCII bytes
        """
        salt = self._provider.random_bytes(PBKDF2_SALT_BYTES)
        key = self._provider.pbkdf2(
            to_bytes(password), salt, self._algorithm.value,
            self._iterations, self._output_byte_count
        )

        digest = PBKDF2Digest(
            algorithm=self._algorithm,
            iterations=self._iterations,
            salt=salt,
            key=key,
        )
        log_event(
            logger, EventType.HASH_CREATED, self.scheme,
            algorithm=self._algorithm.value, iterations=self._iterations,
        )
        return format_digest(digest).encode('ascii')

    def verify(self, password: BytesLike, digest: BytesLike) -> bool:
        """
        Verify a password against a PHC string.

        Args:
            password: Password to check
            digest: Stored digest

        Returns:
            True if the password matches; False on mismatch or on any
            malformed digest
        """
        if not digest:
            return False

        parsed = parse_digest(to_text(digest))
        if parsed is None or parsed.algorithm is not self._algorithm:
            log_event(
                logger, EventType.DIGEST_REJECTED, self.scheme,
                expected=self._algorithm.value,
            )
            return False

        key = self._provider.pbkdf2(
            to_bytes(password), parsed.salt, parsed.algorithm.value,
            parsed.iterations, len(parsed.key)
        )

        matched = hmac.compare_digest(key, parsed.key)
        log_event(
            logger,
            EventType.VERIFY_SUCCESS if matched else EventType.VERIFY_FAILED,
            self.scheme,
            algorithm=parsed.algorithm.value,
            iterations=parsed.iterations,
        )
        return matched

    def __repr__(self) -> str:
        return (
            f"PBKDF2Hasher(pseudo_random_function={self._algorithm.value!r}, "
            f"iterations={self._iterations})"
        )
