"""
HOTP / TOTP One-Time Passwords

Implements RFC 4226 (HOTP) and RFC 6238 (TOTP).

Features:
- HOTP code generation from a 64-bit counter
- TOTP code generation from Unix time
- SHA-1, SHA-256 and SHA-512 digests; 6 or 8 digit codes
- Range generation for clock-skew tolerant verification windows
- Constant-time code verification
- Secret key generation and base32 helpers for authenticator apps

Compatible with Google Authenticator, Authy, Microsoft Authenticator and
any other RFC 6238 authenticator.
"""

import base64
import hmac
import logging
import re
import secrets
import struct
import time
from datetime import datetime
from enum import Enum, IntEnum
from typing import List, Optional, Union
from urllib.parse import quote

from ..core_crypto.provider import CryptoProvider, default_provider
from ..integration.event_logger import EventType, key_fingerprint, log_event


logger = logging.getLogger(__name__)


class OTPDigest(Enum):
    """HMAC digest used to compute codes."""
    SHA1 = 'sha1'
    SHA256 = 'sha256'
    SHA512 = 'sha512'


class OTPDigits(IntEnum):
    """Supported code lengths."""
    SIX = 6
    EIGHT = 8


# TOTP configuration (RFC 6238 defaults)
TOTP_DIGITS = OTPDigits.SIX
TOTP_TIME_STEP = 30                 # Time step in seconds
TOTP_SECRET_BYTES = 20              # 160 bits, the SHA-1 block recommendation
TOTP_ALGORITHM = OTPDigest.SHA1
TOTP_DRIFT_TOLERANCE = 1            # Accept codes from +/- this many time steps

MAX_COUNTER = 2 ** 64 - 1

_CODE_RE = re.compile(r'[0-9]+')

Timestamp = Union[int, float, datetime, None]


def _digest(algorithm: Union[OTPDigest, str]) -> OTPDigest:
    """Coerce an OTPDigest or a name such as 'SHA256'."""
    if isinstance(algorithm, OTPDigest):
        return algorithm
    return OTPDigest(str(algorithm).lower())


def _check_counter(counter: int) -> int:
    if not 0 <= counter <= MAX_COUNTER:
        raise ValueError(f"Counter must be between 0 and {MAX_COUNTER}")
    return counter


def generate_secret(length: int = TOTP_SECRET_BYTES) -> bytes:
    """
    Generate a cryptographically secure random secret.

    Args:
        length: Secret length in bytes (default 20 for SHA-1)

    Returns:
        Random bytes for use as an OTP secret
    """
    return secrets.token_bytes(length)


def secret_to_base32(secret: bytes) -> str:
    """
    Encode secret as base32 string (for authenticator apps).

    Args:
        secret: Raw secret bytes

    Returns:
        Base32-encoded string (no padding)
    """
    return base64.b32encode(secret).decode('ascii').rstrip('=')


def base32_to_secret(encoded: str) -> bytes:
    """
    Decode base32 secret string to bytes.

    Spaces are ignored and padding is optional, as authenticator apps
    display secrets in groups without padding.

    Args:
        encoded: Base32-encoded string

    Returns:
        Raw secret bytes
    """
    encoded = encoded.replace(' ', '').upper()
    # Add padding if needed
    encoded += '=' * (-len(encoded) % 8)
    return base64.b32decode(encoded)


def get_time_counter(timestamp: Timestamp = None, time_step: int = TOTP_TIME_STEP) -> int:
    """
    Get the time counter value for TOTP.

    Args:
        timestamp: Unix timestamp or datetime (uses current time if None)
        time_step: Time step in seconds

    Returns:
        Time counter (T = floor(time / time_step))
    """
    if timestamp is None:
        timestamp = time.time()
    elif isinstance(timestamp, datetime):
        timestamp = timestamp.timestamp()
    return int(timestamp // time_step)


def get_remaining_seconds(timestamp: Timestamp = None,
                          time_step: int = TOTP_TIME_STEP) -> int:
    """
    Get seconds remaining until the next TOTP code.

    Args:
        timestamp: Unix timestamp or datetime (uses current time if None)
        time_step: Time step in seconds

    Returns:
        Seconds until next code
    """
    if timestamp is None:
        timestamp = time.time()
    elif isinstance(timestamp, datetime):
        timestamp = timestamp.timestamp()
    return time_step - (int(timestamp) % time_step)


def hotp(secret: bytes, counter: int, digits: int = TOTP_DIGITS,
         algorithm: Union[OTPDigest, str] = TOTP_ALGORITHM,
         provider: Optional[CryptoProvider] = None) -> str:
    """
    Generate HOTP (HMAC-based OTP) value.

    Implements RFC 4226.

    Args:
        secret: Shared secret key (any length)
        counter: Counter value (unsigned 64-bit)
        digits: Number of digits in OTP (6 or 8)
        algorithm: HMAC digest (SHA1, SHA256, SHA512)
        provider: Primitive crypto provider (default provider if None)

    Returns:
        OTP string with specified number of digits

    Raises:
        ValueError: If digits is not 6 or 8, or counter is out of range
    """
    digits = OTPDigits(digits)
    algorithm = _digest(algorithm)
    provider = provider or default_provider

    # Pack counter as 8-byte big-endian integer
    counter_bytes = struct.pack('>Q', _check_counter(counter))

    hmac_hash = provider.hmac(secret, counter_bytes, algorithm.value)

    # Dynamic truncation (RFC 4226)
    # Get offset from last 4 bits of hash
    offset = hmac_hash[-1] & 0x0F

    # Extract 4 bytes starting at offset
    truncated = struct.unpack('>I', hmac_hash[offset:offset + 4])[0]

    # Clear the most significant bit (ensure positive number)
    truncated &= 0x7FFFFFFF

    otp = truncated % (10 ** digits)

    # Pad with leading zeros if needed
    return str(otp).zfill(digits)


def totp(secret: bytes, timestamp: Timestamp = None,
         digits: int = TOTP_DIGITS,
         time_step: int = TOTP_TIME_STEP,
         algorithm: Union[OTPDigest, str] = TOTP_ALGORITHM,
         provider: Optional[CryptoProvider] = None) -> str:
    """
    Generate TOTP (Time-based OTP) value.

    Implements RFC 6238.

    Args:
        secret: Shared secret key
        timestamp: Unix timestamp or datetime (uses current time if None)
        digits: Number of digits in OTP
        time_step: Time step in seconds
        algorithm: HMAC digest
        provider: Primitive crypto provider (default provider if None)

    Returns:
        TOTP string with specified number of digits
    """
    counter = get_time_counter(timestamp, time_step)
    return hotp(secret, counter, digits, algorithm, provider)


def _normalize_code(code: str, digits: int) -> Optional[str]:
    """Strip spaces from `code`; None if it cannot be a valid code."""
    code = str(code).replace(' ', '').strip()
    if len(code) != digits or not _CODE_RE.fullmatch(code):
        return None
    return code


class HOTP:
    """
    Counter-based OTP generator for a single secret.

    Example:
        >>> gen = HOTP(b"12345678901234567890")
        >>> gen.generate(0)
        '755224'
        >>> gen.generate_range(1, 1)
        ['755224', '287082', '359152']
    """

    def __init__(self, key: bytes,
                 digest: Union[OTPDigest, str] = TOTP_ALGORITHM,
                 digits: int = TOTP_DIGITS,
                 provider: Optional[CryptoProvider] = None):
        """
        Args:
            key: Shared secret
            digest: HMAC digest
            digits: Code length, 6 or 8
            provider: Primitive crypto provider (default provider if None)

        Raises:
            ValueError: If digest or digits is unsupported
        """
        self._key = bytes(key)
        self._digest = _digest(digest)
        self._digits = OTPDigits(digits)
        self._provider = provider or default_provider

    @property
    def key(self) -> bytes:
        return self._key

    @property
    def digest(self) -> OTPDigest:
        return self._digest

    @property
    def digits(self) -> OTPDigits:
        return self._digits

    def generate(self, counter: int) -> str:
        """Generate the code for `counter`."""
        return hotp(self._key, counter, self._digits, self._digest, self._provider)

    def generate_range(self, counter: int, window: int) -> List[str]:
        """
        Generate codes for counters counter-window .. counter+window.

        Args:
            counter: Center counter
            window: Number of counters on each side

        Returns:
            2 * window + 1 codes in ascending counter order

        Raises:
            ValueError: If any counter of the window is out of range
        """
        if window < 0:
            raise ValueError("Window must not be negative")
        _check_counter(counter - window)
        _check_counter(counter + window)
        return [self.generate(c) for c in _window(counter, window)]

    def verify(self, code: str, counter: int, window: int = 0) -> bool:
        """
        Verify a code against `counter` and the next `window` counters.

        Look-ahead only, following the RFC 4226 resynchronization scheme.

        Args:
            code: Code to verify
            counter: Expected counter
            window: Number of further counters to accept

        Returns:
            True if the code matches any counter in the window

        Raises:
            ValueError: If counter is out of range, whatever the code
        """
        _check_counter(counter)
        code = _normalize_code(code, self._digits)
        matched = False
        if code is not None:
            last = min(counter + window, MAX_COUNTER)
            for candidate in range(counter, last + 1):
                if hmac.compare_digest(code.encode('ascii'),
                                       self.generate(candidate).encode('ascii')):
                    matched = True
                    break

        log_event(
            logger,
            EventType.OTP_VERIFIED if matched else EventType.OTP_FAILED,
            'hotp',
            key=key_fingerprint(self._key),
        )
        return matched

    def __repr__(self) -> str:
        return f"HOTP(digest={self._digest.value!r}, digits={int(self._digits)})"


class TOTP:
    """
    Time-based OTP generator and verifier for a single secret.

    Example:
        >>> gen = TOTP(b"12345678901234567890", digits=8)
        >>> gen.generate(59)
        '94287082'
        >>> gen.verify(gen.generate())
        True
    """

    def __init__(self, key: Optional[bytes] = None,
                 digest: Union[OTPDigest, str] = TOTP_ALGORITHM,
                 digits: int = TOTP_DIGITS,
                 interval: int = TOTP_TIME_STEP,
                 provider: Optional[CryptoProvider] = None):
        """
        Args:
            key: Shared secret (generated if None)
            digest: HMAC digest
            digits: Code length, 6 or 8
            interval: Time step in seconds
            provider: Primitive crypto provider (default provider if None)

        Raises:
            ValueError: If digest, digits or interval is invalid
        """
        if isinstance(interval, bool) or not isinstance(interval, int) or interval <= 0:
            raise ValueError("Interval must be a positive number of seconds")
        self._hotp = HOTP(
            key if key is not None else generate_secret(),
            digest, digits, provider
        )
        self._interval = interval

    @property
    def secret(self) -> bytes:
        """Raw secret bytes."""
        return self._hotp.key

    @property
    def secret_base32(self) -> str:
        """Base32-encoded secret for authenticator apps."""
        return secret_to_base32(self.secret)

    @property
    def digest(self) -> OTPDigest:
        return self._hotp.digest

    @property
    def digits(self) -> OTPDigits:
        return self._hotp.digits

    @property
    def interval(self) -> int:
        """Time step in seconds."""
        return self._interval

    def counter_at(self, timestamp: Timestamp = None) -> int:
        """Time counter for `timestamp` (now if None)."""
        return get_time_counter(timestamp, self._interval)

    def generate(self, timestamp: Timestamp = None) -> str:
        """
        Generate the code for a time.

        Args:
            timestamp: Unix timestamp or datetime (uses current time if None)

        Returns:
            TOTP code string
        """
        return self._hotp.generate(self.counter_at(timestamp))

    def generate_range(self, timestamp: Timestamp = None, window: int = TOTP_DRIFT_TOLERANCE) -> List[str]:
        """
        Generate codes for the time steps around `timestamp`.

        Args:
            timestamp: Unix timestamp or datetime (uses current time if None)
            window: Number of time steps on each side

        Returns:
            2 * window + 1 codes, oldest first
        """
        return self._hotp.generate_range(self.counter_at(timestamp), window)

    def verify(self, code: str, timestamp: Timestamp = None,
               window: int = TOTP_DRIFT_TOLERANCE) -> bool:
        """
        Verify a TOTP code with drift tolerance.

        Checks the code against the current time step and +/- window
        time steps to account for clock drift.

        Args:
            code: OTP code to verify
            timestamp: Unix timestamp or datetime (uses current time if None)
            window: Number of time steps to check in each direction

        Returns:
            True if code is valid, False otherwise
        """
        code = _normalize_code(code, self.digits)
        current = self.counter_at(timestamp)
        matched = False
        if code is not None:
            for counter in _window(current, window):
                # Steps before the epoch do not exist
                if not 0 <= counter <= MAX_COUNTER:
                    continue
                # Use constant-time comparison
                if hmac.compare_digest(code.encode('ascii'),
                                       self._hotp.generate(counter).encode('ascii')):
                    matched = True
                    break

        log_event(
            logger,
            EventType.OTP_VERIFIED if matched else EventType.OTP_FAILED,
            'totp',
            key=key_fingerprint(self.secret),
        )
        return matched

    def remaining_seconds(self, timestamp: Timestamp = None) -> int:
        """Get seconds until next code."""
        return get_remaining_seconds(timestamp, self._interval)

    def provisioning_uri(self, account_name: str, issuer: str = "credvault") -> str:
        """
        Generate otpauth:// URI for QR code.

        This URI can be encoded as a QR code and scanned by
        authenticator apps like Google Authenticator.

        Args:
            account_name: Account identifier (usually an email)
            issuer: Service name shown in authenticator apps

        Returns:
            otpauth:// URI string
        """
        label = f"{issuer}:{account_name}"
        params = {
            'secret': self.secret_base32,
            'issuer': issuer,
            'algorithm': self.digest.value.upper(),
            'digits': str(int(self.digits)),
            'period': str(self._interval),
        }

        param_str = '&'.join(f"{k}={quote(str(v))}" for k, v in params.items())
        return f"otpauth://totp/{quote(label)}?{param_str}"

    def __repr__(self) -> str:
        return (
            f"TOTP(digest={self.digest.value!r}, digits={int(self.digits)}, "
            f"interval={self._interval})"
        )


def _window(center: int, size: int):
    """Counters center-size .. center+size in ascending order."""
    return range(center - size, center + size + 1)
