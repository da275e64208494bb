# Integration Module
"""
Security event logging shared by the hashers and OTP generators.

Events are emitted through the standard logging module; secrets are
never included.
"""

# Lazy imports to avoid RuntimeWarning when running module directly
def __getattr__(name):
    """Lazy import to avoid circular import issues."""
    from . import event_logger
    return getattr(event_logger, name)

__all__ = [
    'EventType',
    'SecurityEvent',
    'log_event',
    'key_fingerprint',
]
