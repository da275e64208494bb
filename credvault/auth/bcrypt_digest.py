"""
bcrypt Digest Module

Creates and verifies bcrypt hashes in the OpenBSD modular crypt format:

    $2b$12$J/dtt5ybYUTCJ/dtt5ybYO0ECbLhlD5N2Y5zyk4CWRW1BW.aKGpJe

    revision   $2b$                              2a, 2y or 2b
    cost       12$                               2 digits, 04-31
    salt       J/dtt5ybYUTCJ/dtt5ybYO            22 chars
    checksum   0ECbLhlD5N2Y5zyk4CWRW1BW.aKGpJe   31 chars

Features:
- Random 16-byte salts encoded with bcrypt's radix-64 alphabet
- Caller-supplied salts (bare 22-char seed or full 29-char salt)
- Legacy 2y revision support (hashed as 2b, reported as 2y)
- Constant-time checksum comparison on verification

Security considerations:
- Only the checksum is compared; revision, cost and salt are inputs
- Malformed digests raise InvalidHash instead of returning False, so a
  corrupt stored hash is never mistaken for a wrong password
"""

import hmac
import logging
import re
from enum import Enum
from typing import Optional

from ..core_crypto import radix64
from ..core_crypto.provider import CryptoProvider, default_provider
from ..integration.event_logger import EventType, log_event
from .errors import InvalidCost, InvalidSalt, InvalidHash, HashFailure, InternalError
from .hasher import BytesLike, to_bytes, to_text


logger = logging.getLogger(__name__)

# Cost (log2 of the number of rounds)
DEFAULT_COST = 12
MIN_COST = 4
MAX_COST = 31

# Format lengths
REVISION_LENGTH = 4       # "$2b$"
SALT_SEED_BYTES = 16      # Raw random salt
RAW_SALT_LENGTH = 22      # Radix-64 encoded seed
FULL_SALT_LENGTH = 29     # Revision + cost + "$" + seed
CHECKSUM_LENGTH = 31      # Radix-64 encoded 23-byte checksum
DIGEST_LENGTH = FULL_SALT_LENGTH + CHECKSUM_LENGTH

_FULL_SALT_RE = re.compile(r'\$2[aby]\$([0-9]{2})\$[./A-Za-z0-9]{22}')


class Revision(Enum):
    """bcrypt revision prefixes."""

    # Older version
    V2A = '$2a$'
    # crypt_blowfish specific, identical to 2b in all but name
    V2Y = '$2y$'
    # Current OpenBSD revision
    V2B = '$2b$'

    @classmethod
    def parse(cls, text: str) -> Optional['Revision']:
        """Return the revision `text` starts with, or None."""
        try:
            return cls(text[:REVISION_LENGTH])
        except ValueError:
            return None


def is_salt_valid(salt: str) -> bool:
    """
    Check whether `salt` can be passed to BcryptDigest.hash_with_salt.

    A salt with a recognized revision must be a full 29-char salt with a
    cost in range; anything else must be a bare 22-char radix-64 seed.
    """
    if Revision.parse(salt) is not None:
        match = _FULL_SALT_RE.fullmatch(salt)
        return match is not None and MIN_COST <= int(match.group(1)) <= MAX_COST
    return len(salt) == RAW_SALT_LENGTH and radix64.is_radix64(salt)


class BcryptDigest:
    """
    bcrypt hash creation and verification.

    Example:
        >>> digest = BcryptDigest()
        >>> h = digest.hash("vapor", cost=4)
        >>> digest.verify("vapor", h)
        True
        >>> digest.verify("foo", h)
        False
    """

    def __init__(self, provider: Optional[CryptoProvider] = None):
        """
        Args:
            provider: Primitive crypto provider (default provider if None)
        """
        self._provider = provider or default_provider

    def hash(self, plaintext: BytesLike, cost: int = DEFAULT_COST) -> str:
        """
        Create a bcrypt hash with a fresh random salt.

        Args:
            plaintext: Password to hash
            cost: Work factor, 4 to 31. Each +1 doubles the time.

        Returns:
            60-character digest, e.g. "$2b$12$..."

        Raises:
            InvalidCost: If cost is out of range
            HashFailure: If the primitive fails
        """
        salt = self.generate_salt(cost)
        digest = self.hash_with_salt(plaintext, salt)
        log_event(logger, EventType.HASH_CREATED, 'bcrypt', cost=cost)
        return digest

    def hash_with_salt(self, plaintext: BytesLike, salt: str) -> str:
        """
        Create a bcrypt hash using a provided salt.

        The salt is either a bare 22-character seed (hashed as 2b with the
        default cost) or a full 29-character salt such as
        "$2b$12$J/dtt5ybYUTCJ/dtt5ybYO".

        Args:
            plaintext: Password to hash
            salt: Bare or full salt

        Returns:
            60-character digest carrying the salt's own revision

        Raises:
            InvalidSalt: If the salt format is invalid
            HashFailure: If the primitive fails
            InternalError: If the primitive output cannot be read
        """
        if not isinstance(salt, str) or not is_salt_valid(salt):
            raise InvalidSalt()

        if len(salt) == RAW_SALT_LENGTH:
            revision = Revision.V2B
            salt = f"{revision.value}{DEFAULT_COST:02d}${salt}"
        else:
            revision = Revision.parse(salt)

        # OpenBSD doesn't know 2y; it is the same algorithm as 2b
        if revision is Revision.V2Y:
            normalized_salt = Revision.V2B.value + salt[REVISION_LENGTH:]
        else:
            normalized_salt = salt

        try:
            buffer = self._provider.bcrypt(
                to_bytes(plaintext), normalized_salt.encode('ascii')
            )
        except ValueError as e:
            log_event(logger, EventType.HASH_FAILURE, 'bcrypt', error=type(e).__name__)
            raise HashFailure() from e

        # Buffer holds a NUL-terminated C string
        try:
            output = bytes(buffer).split(b'\x00', 1)[0].decode('ascii')
        except (TypeError, UnicodeDecodeError) as e:
            raise InternalError() from e

        if len(output) != DIGEST_LENGTH or Revision.parse(output) is None:
            raise InternalError()

        return revision.value + output[REVISION_LENGTH:]

    def verify(self, plaintext: BytesLike, hash_str: BytesLike) -> bool:
        """
        Verify that `hash_str` was created from `plaintext`.

        Revision, cost and salt are parsed from the existing digest and
        used to hash the plaintext again; the checksums are then compared
        in constant time.

        Args:
            plaintext: Password to check
            hash_str: Existing bcrypt digest

        Returns:
            True if the digest was created from the plaintext

        Raises:
            InvalidHash: If the digest is malformed
            HashFailure: If the primitive fails
        """
        hash_str = to_text(hash_str)

        revision = Revision.parse(hash_str)
        if revision is None or len(hash_str) != DIGEST_LENGTH:
            log_event(logger, EventType.DIGEST_REJECTED, 'bcrypt', length=len(hash_str))
            raise InvalidHash()

        hash_salt = hash_str[:FULL_SALT_LENGTH]
        hash_checksum = hash_str[-CHECKSUM_LENGTH:]
        if not is_salt_valid(hash_salt) or not radix64.is_radix64(hash_checksum):
            log_event(logger, EventType.DIGEST_REJECTED, 'bcrypt', length=len(hash_str))
            raise InvalidHash()

        message_hash = self.hash_with_salt(plaintext, hash_salt)
        message_checksum = message_hash[-CHECKSUM_LENGTH:]

        matched = hmac.compare_digest(
            message_checksum.encode('ascii'), hash_checksum.encode('ascii')
        )
        log_event(
            logger,
            EventType.VERIFY_SUCCESS if matched else EventType.VERIFY_FAILED,
            'bcrypt',
            revision=revision.value.strip('$'),
        )
        return matched

    def generate_salt(self, cost: int = DEFAULT_COST,
                      revision: Revision = Revision.V2B,
                      seed: Optional[bytes] = None) -> str:
        """
        Generate a full 29-character salt.

            $2b$05$J/dtt5ybYUTCJ/dtt5ybYO
            $AA$                            => revision
                CC$                         => cost (zero padded)
                   SSSSSSSSSSSSSSSSSSSSSS   => radix-64 seed

        Args:
            cost: Work factor, 4 to 31
            revision: Revision prefix (2b by default)
            seed: 16 raw bytes; random if None

        Returns:
            Full salt string

        Raises:
            InvalidCost: If cost is out of range
        """
        check_cost(cost)

        if seed is None:
            seed = self._provider.random_bytes(SALT_SEED_BYTES)
        if len(seed) != SALT_SEED_BYTES:
            raise ValueError(f"Salt seed must be {SALT_SEED_BYTES} bytes")

        return f"{revision.value}{cost:02d}${radix64.encode(seed)}"


def check_cost(cost: int) -> int:
    """Return `cost` if it is a valid bcrypt cost, else raise InvalidCost."""
    if isinstance(cost, bool) or not isinstance(cost, int):
        raise InvalidCost()
    if not MIN_COST <= cost <= MAX_COST:
        raise InvalidCost()
    return cost


class BcryptHasher:
    """
    PasswordHasher backed by bcrypt.

    Example:
        >>> hasher = BcryptHasher(cost=4)
        >>> digest = hasher.hash("vapor")
        >>> hasher.verify("vapor", digest)
        True
    """

    scheme = 'bcrypt'

    def __init__(self, cost: int = DEFAULT_COST,
                 provider: Optional[CryptoProvider] = None):
        """
        Args:
            cost: Work factor for new hashes. Verification uses the cost
                stored in each digest.
            provider: Primitive crypto provider (default provider if None)

        Raises:
            InvalidCost: If cost is out of range
        """
        self._cost = check_cost(cost)
        self._digest = BcryptDigest(provider)

    @property
    def cost(self) -> int:
        """Work factor used for new hashes."""
        return self._cost

    def hash(self, password: BytesLike) -> bytes:
        return self._digest.hash(password, self._cost).encode('ascii')

    def verify(self, password: BytesLike, digest: BytesLike) -> bool:
        return self._digest.verify(password, digest)

    def __repr__(self) -> str:
        return f"BcryptHasher(cost={self._cost})"


# Module-level digest instance
_default_digest = BcryptDigest()


def hash_password(password: BytesLike, cost: int = DEFAULT_COST) -> str:
    """Convenience function to create a bcrypt hash."""
    return _default_digest.hash(password, cost)


def verify_password(password: BytesLike, hash_str: BytesLike) -> bool:
    """Convenience function to verify a bcrypt hash."""
    return _default_digest.verify(password, hash_str)
