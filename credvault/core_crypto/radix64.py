"""
bcrypt Radix-64 Encoding

OpenBSD bcrypt encodes salts and checksums with its own base-64 alphabet:

    ./ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789

Bit grouping is the same as RFC 4648 base64 (3 bytes -> 4 symbols,
big-endian), but there is no padding. A 16-byte salt encodes to 22 symbols.
"""

import base64
import re


BCRYPT_ALPHABET = './ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789'
STANDARD_ALPHABET = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/'

_TO_BCRYPT = str.maketrans(STANDARD_ALPHABET, BCRYPT_ALPHABET)
_FROM_BCRYPT = str.maketrans(BCRYPT_ALPHABET, STANDARD_ALPHABET)

_VALID_RE = re.compile(r'[./A-Za-z0-9]*')


def encoded_length(byte_count: int) -> int:
    """Number of radix-64 symbols needed for `byte_count` bytes."""
    return (byte_count * 8 + 5) // 6


def is_radix64(text: str) -> bool:
    """True if every character of `text` is in the bcrypt alphabet."""
    return _VALID_RE.fullmatch(text) is not None


def encode(data: bytes) -> str:
    """
    Encode bytes with the bcrypt alphabet.

    Args:
        data: Raw bytes (16 for a bcrypt salt)

    Returns:
        Unpadded radix-64 string
    """
    standard = base64.b64encode(data).decode('ascii').rstrip('=')
    return standard.translate(_TO_BCRYPT)


def decode(text: str) -> bytes:
    """
    Decode a radix-64 string back to bytes.

    Trailing bits that do not fill a whole byte are discarded, so the
    22-symbol salt decodes to exactly 16 bytes.

    Raises:
        ValueError: If the text has characters outside the alphabet or
            an impossible length
    """
    if not is_radix64(text):
        raise ValueError("Invalid radix-64 character")
    if len(text) % 4 == 1:
        raise ValueError("Invalid radix-64 length")

    byte_count = len(text) * 6 // 8

    # Zero the unused low bits of the last symbol so the standard decoder
    # accepts a non-canonical final character
    standard = text.translate(_FROM_BCRYPT)
    unused_bits = (len(standard) * 6) % 8
    if unused_bits:
        last = STANDARD_ALPHABET.index(standard[-1]) & ~((1 << unused_bits) - 1)
        standard = standard[:-1] + STANDARD_ALPHABET[last]

    padded = standard + '=' * (-len(standard) % 4)
    return base64.b64decode(padded)[:byte_count]
