"""
Password Hasher Interface

Every password scheme exposes the same two operations:

    digest = hasher.hash(password)
    hasher.verify(password, digest)  # -> bool

Implementations:
- PlaintextHasher: identity, for tests and migration paths only
- BcryptHasher: bcrypt (bcrypt_digest.py)
- PBKDF2Hasher: PBKDF2 in PHC string format (pbkdf2.py)

There is no registry: callers pick a scheme by constructing it.
"""

import logging
from typing import Protocol, Union

from ..integration.event_logger import EventType, log_event


logger = logging.getLogger(__name__)

# Passwords and digests may be given as text or raw bytes
BytesLike = Union[bytes, bytearray, memoryview, str]


def to_bytes(value: BytesLike) -> bytes:
    """Return `value` as bytes, UTF-8 encoding text."""
    if isinstance(value, str):
        return value.encode('utf-8')
    return bytes(value)


def to_text(value: BytesLike) -> str:
    """Return `value` as text, decoding bytes as UTF-8 (invalid bytes replaced)."""
    if isinstance(value, str):
        return value
    return bytes(value).decode('utf-8', errors='replace')


class PasswordHasher(Protocol):
    """
    Password hashing and verification capability.

    Implementations are configured once at construction and hold no
    other state, so a single instance is safe to share between threads.
    """

    def hash(self, password: BytesLike) -> bytes:
        """
        Hash a password.

        Args:
            password: Plaintext password

        Returns:
            Serialized digest, safe to store
        """
        ...

    def verify(self, password: BytesLike, digest: BytesLike) -> bool:
        """
        Check a password against a stored digest.

        Args:
            password: Plaintext password
            digest: Digest previously returned by hash()

        Returns:
            True if the password matches
        """
        ...


class PlaintextHasher:
    """
    Identity "hasher".

    Provides no secrecy at all. Comparison is plain equality for the same
    reason.

    Example:
        >>> hasher = PlaintextHasher()
        >>> hasher.hash("vapor")
        b'vapor'
        >>> hasher.verify("vapor", b"vapor")
        True
    """

    scheme = 'plaintext'

    def hash(self, password: BytesLike) -> bytes:
        return to_bytes(password)

    def verify(self, password: BytesLike, digest: BytesLike) -> bool:
        matched = to_bytes(password) == to_bytes(digest)
        log_event(
            logger,
            EventType.VERIFY_SUCCESS if matched else EventType.VERIFY_FAILED,
            self.scheme,
        )
        return matched

    def __repr__(self) -> str:
        return "PlaintextHasher()"
