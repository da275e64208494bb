"""
Security Event Logging

Every hasher and OTP generator reports what it did through this module.
Events go to the standard logging module as compact JSON records, so the
host application decides where (and whether) they end up.

Privacy rules:
- Passwords, digests, OTP codes and secret keys are never logged
- Key material is referenced by a short SHA-256 fingerprint only
"""

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


# ============================================================================
# Constants
# ============================================================================

EVENT_VERSION = "1.0"
FINGERPRINT_LENGTH = 16


# ============================================================================
# Privacy Functions
# ============================================================================

def key_fingerprint(key: bytes) -> str:
    """
    Compute a privacy-preserving fingerprint of key material.

    Lets log readers correlate events for the same OTP secret without
    exposing the secret.

    Args:
        key: Raw secret bytes

    Returns:
        First 16 hex characters of SHA-256(key)
    """
    return hashlib.sha256(key).hexdigest()[:FINGERPRINT_LENGTH]


# ============================================================================
# Event Types
# ============================================================================

class EventType(Enum):
    """Types of security events that can be logged."""

    # Password events
    HASH_CREATED = "hash_created"
    VERIFY_SUCCESS = "verify_success"
    VERIFY_FAILED = "verify_failed"
    DIGEST_REJECTED = "digest_rejected"
    HASH_FAILURE = "hash_failure"

    # OTP events
    OTP_VERIFIED = "otp_verified"
    OTP_FAILED = "otp_failed"


# Default log level per event type
EVENT_LEVELS = {
    EventType.HASH_CREATED: logging.DEBUG,
    EventType.VERIFY_SUCCESS: logging.DEBUG,
    EventType.VERIFY_FAILED: logging.INFO,
    EventType.DIGEST_REJECTED: logging.WARNING,
    EventType.HASH_FAILURE: logging.ERROR,
    EventType.OTP_VERIFIED: logging.DEBUG,
    EventType.OTP_FAILED: logging.INFO,
}


# ============================================================================
# Event Structure
# ============================================================================

@dataclass
class SecurityEvent:
    """
    A single security event.

    `scheme` names the algorithm family (bcrypt, pbkdf2, plaintext, hotp,
    totp); `details` carries non-secret parameters such as cost or
    iteration count.
    """
    event_type: EventType
    scheme: str
    timestamp: int
    details: Dict[str, Any] = field(default_factory=dict)

    def to_record(self) -> str:
        """Serialize the event as compact JSON."""
        return json.dumps({
            'version': EVENT_VERSION,
            'type': self.event_type.value,
            'scheme': self.scheme,
            'time': self.timestamp,
            'iso_time': datetime.fromtimestamp(self.timestamp).isoformat(),
            'details': self.details,
        }, separators=(',', ':'), sort_keys=True)

    @classmethod
    def from_record(cls, record: str) -> 'SecurityEvent':
        """Parse an event from its JSON record."""
        data = json.loads(record)
        return cls(
            event_type=EventType(data['type']),
            scheme=data['scheme'],
            timestamp=data['time'],
            details=data.get('details', {}),
        )

    def __str__(self) -> str:
        dt = datetime.fromtimestamp(self.timestamp)
        return (
            f"[{dt.strftime('%Y-%m-%d %H:%M:%S')}] "
            f"{self.event_type.value} | {self.scheme}"
        )


def log_event(logger: logging.Logger, event_type: EventType, scheme: str,
              level: Optional[int] = None, **details: Any) -> SecurityEvent:
    """
    Build a SecurityEvent and emit it on `logger`.

    Args:
        logger: Destination logger (normally the caller's module logger)
        event_type: What happened
        scheme: Algorithm family
        level: Override for the event type's default level
        **details: Non-secret parameters to attach

    Returns:
        The emitted event
    """
    event = SecurityEvent(
        event_type=event_type,
        scheme=scheme,
        timestamp=int(time.time()),
        details=details,
    )
    if level is None:
        level = EVENT_LEVELS[event_type]
    if logger.isEnabledFor(level):
        logger.log(level, event.to_record())
    return event
