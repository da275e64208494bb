# Core Cryptography Module
"""
Primitive building blocks used by the password hashers and OTP generators:
- Crypto provider (HMAC, PBKDF2, bcrypt primitive, secure random)
- bcrypt radix-64 encoding
"""
