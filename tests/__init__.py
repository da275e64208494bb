# credvault Test Suite
"""
Test suite including:
- Unit tests (bcrypt, PBKDF2, HOTP/TOTP, core crypto)
- Integration tests (event logging, workflows, command line)
- Security tests (invalid inputs, tampering, log privacy)

Run with: pytest
"""
