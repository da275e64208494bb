"""
Password hashing errors.

bcrypt reports format and primitive problems as exceptions so callers can
tell "cannot verify" apart from "password incorrect". PBKDF2 verification
never raises for malformed digests; it returns False instead.
"""


class BcryptError(Exception):
    """Base class for bcrypt failures."""

    reason = "Unknown bcrypt error"

    def __init__(self, reason: str = None):
        if reason is not None:
            self.reason = reason
        super().__init__(self.reason)

    def __str__(self) -> str:
        return f"bcrypt error: {self.reason}"


class InvalidCost(BcryptError, ValueError):
    """Cost outside [4, 31]."""
    reason = "Cost should be between 4 and 31"


class InvalidSalt(BcryptError, ValueError):
    """Malformed salt or unrecognized revision passed to hashing."""
    reason = "Provided salt has the incorrect format"


class InvalidHash(BcryptError, ValueError):
    """Stored digest could not be parsed for verification."""
    reason = "Invalid hash formatting"


class HashFailure(BcryptError):
    """The bcrypt primitive failed to compute a hash."""
    reason = "Unable to compute hash"


class InternalError(BcryptError):
    """The primitive's output buffer could not be read back."""
    reason = "Internal bcrypt error"
