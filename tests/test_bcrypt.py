"""
Unit tests for the bcrypt digest module.

Tests:
- Known OpenBSD / crypt_blowfish vectors (2a, 2y)
- Cost validation
- Salt formats (bare, full, 2y normalization)
- Malformed digests
- Primitive failures
"""

import warnings
from pathlib import Path

import pytest

from credvault.auth import bcrypt_digest
from credvault.auth.bcrypt_digest import (
    BcryptDigest, BcryptHasher, Revision, is_salt_valid, check_cost,
    hash_password, verify_password,
    DEFAULT_COST, DIGEST_LENGTH, FULL_SALT_LENGTH, CHECKSUM_LENGTH,
)
from credvault.auth.errors import (
    BcryptError, InvalidCost, InvalidSalt, InvalidHash, HashFailure, InternalError
)
from credvault.core_crypto.provider import CryptoProvider


KNOWN_HASHES = [
    ("$2a$05$CCCCCCCCCCCCCCCCCCCCC.E5YPO9kmyuRGyh0XouQYb4YMJKvyOeW", "U*U"),
    ("$2a$05$CCCCCCCCCCCCCCCCCCCCC.VGOzA784oUp/Z0DY336zx7pLYAy0lwK", "U*U*"),
    ("$2a$05$XXXXXXXXXXXXXXXXXXXXXOAcXxm9kjPGEMsLznoKqmqw7tc8WCx4a", "U*U*U"),
    (
        "$2a$05$abcdefghijklmnopqrstuu5s2v8.iXieOjg/.AySBTTZIIVFJeBui",
        "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
        "0123456789chars after 72 are ignored",
    ),
    ("$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm", "vapor"),
    ("$2y$11$kHM/VXmCVsGXDGIVu9mD8eY/uEYI.Nva9sHgrLYuLzr0il28DDOGO", "Vapor3"),
    ("$2a$06$DCq7YPn5Rq63x1Lad4cll.TV4S6ytwfsfvkgY8jIucDrjc8deX1s.", ""),
    ("$2a$06$m0CrhHm10qJ3lXRY.5zDGO3rS2KdeeWLuGmsfGlMfOxih58VYVfxe", "a"),
    ("$2a$06$If6bvum7DFjUnE9p2uDeDu0YHzrHM6tf.iqN8.yx.jNN1ILEf7h0i", "abc"),
    ("$2a$06$.rCVZVOThsIa97pEDOxvGuRRgzG64bvtJ0938xuqzv18d3ZpQhstC", "abcdefghijklmnopqrstuvwxyz"),
    ("$2a$06$fPIsBO8qRqkjj273rfaOI.HtSV9jLDpTbZn782DC6/t7qT67P6FfO", "~!@#$%^&*()      ~!@#$%^&*()PNBFRD"),
    ("$2a$10$e.qg8zwKLHu3ur5rPF97ouzCJiJmZ93tiwNekDvTQfuhyu97QaUk.", "vapor"),
]


class FailingProvider(CryptoProvider):
    """Provider whose bcrypt primitive always fails."""

    def bcrypt(self, plaintext, salt):
        raise ValueError("primitive failed")


class EmptyBufferProvider(CryptoProvider):
    """Provider that returns an unwritten buffer."""

    def bcrypt(self, plaintext, salt):
        return bytearray(128)


class RecordingProvider(CryptoProvider):
    """Provider that remembers the salts handed to the primitive."""

    def __init__(self):
        self.salts = []

    def bcrypt(self, plaintext, salt):
        self.salts.append(salt)
        return super().bcrypt(plaintext, salt)


class TestKnownHashes:
    """Vectors from the OpenBSD and crypt_blowfish test suites."""

    @pytest.mark.parametrize("digest,message", KNOWN_HASHES)
    def test_verify_known_hash(self, digest, message):
        """Known digest should verify its message."""
        assert BcryptDigest().verify(message, digest), f"{message!r} did not match {digest}"

    def test_known_hash_rejects_other_message(self):
        """Known digest should not verify a different message."""
        digest = "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm"
        assert not BcryptDigest().verify("Vapor", digest)

    def test_hash_with_known_salt(self):
        """Hashing with a known full salt should reproduce the digest."""
        digest = BcryptDigest().hash_with_salt("vapor", "$2a$04$TI13sbmh3IHnmRepeEFoJO")
        assert digest == "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm"

    def test_2y_revision_kept_in_output(self):
        """A 2y salt is hashed as 2b but reported as 2y."""
        digest = BcryptDigest().hash_with_salt("Vapor3", "$2y$11$kHM/VXmCVsGXDGIVu9mD8e")
        assert digest == "$2y$11$kHM/VXmCVsGXDGIVu9mD8eY/uEYI.Nva9sHgrLYuLzr0il28DDOGO"

    def test_bytes_input(self):
        """Password and digest may be bytes."""
        digest = b"$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm"
        assert BcryptDigest().verify(b"vapor", digest)


class TestHashing:
    """Tests for hash creation."""

    def test_version_prefix(self):
        """New hashes use the 2b revision and zero-padded cost."""
        digest = BcryptDigest().hash("foo", cost=6)
        assert digest.startswith("$2b$06$")
        assert len(digest) == DIGEST_LENGTH

    def test_round_trip(self):
        """A hash should verify its own plaintext."""
        bcrypt = BcryptDigest()
        digest = bcrypt.hash("vapor", cost=4)
        assert bcrypt.verify("vapor", digest)

    def test_wrong_password_fails(self):
        """Verification fails for the wrong password."""
        bcrypt = BcryptDigest()
        digest = bcrypt.hash("foo", cost=6)
        assert bcrypt.verify("bar", digest) is False

    def test_random_salts(self):
        """Same password should give different hashes."""
        bcrypt = BcryptDigest()
        assert bcrypt.hash("same", cost=4) != bcrypt.hash("same", cost=4)

    @pytest.mark.parametrize("cost", [4, 5, 9, 10])
    def test_valid_costs(self, cost):
        """Cost is encoded with two digits."""
        digest = BcryptDigest().hash("vapor", cost=cost)
        assert digest[4:7] == f"{cost:02d}$"

    @pytest.mark.parametrize("cost", [1, 3, 32, -1])
    def test_invalid_cost(self, cost):
        """Out of range costs are rejected."""
        with pytest.raises(InvalidCost):
            BcryptDigest().hash("foo", cost=cost)

    def test_invalid_cost_is_bcrypt_error(self):
        """InvalidCost is part of the bcrypt error family."""
        with pytest.raises(BcryptError) as exc_info:
            BcryptDigest().hash("foo", cost=32)
        assert str(exc_info.value) == "bcrypt error: Cost should be between 4 and 31"

    def test_check_cost_rejects_non_int(self):
        with pytest.raises(InvalidCost):
            check_cost("12")
        with pytest.raises(InvalidCost):
            check_cost(True)

    def test_long_password_truncated(self):
        """Bytes after the 72nd do not change the hash."""
        bcrypt = BcryptDigest()
        base = "x" * 72
        digest = bcrypt.hash(base, cost=4)
        assert bcrypt.verify(base + "ignored", digest)

    def test_unicode_password(self):
        bcrypt = BcryptDigest()
        digest = bcrypt.hash("пароль密码", cost=4)
        assert bcrypt.verify("пароль密码", digest)
        assert not bcrypt.verify("пароль", digest)


class TestSalts:
    """Tests for salt generation and validation."""

    def test_generate_salt_with_seed(self):
        """A zero seed encodes to 22 '.' characters."""
        salt = BcryptDigest().generate_salt(5, seed=bytes(16))
        assert salt == "$2b$05$" + "." * 22
        assert len(salt) == FULL_SALT_LENGTH

    def test_generate_salt_revision(self):
        salt = BcryptDigest().generate_salt(12, revision=Revision.V2A, seed=bytes(16))
        assert salt.startswith("$2a$12$")

    def test_generate_salt_bad_seed(self):
        with pytest.raises(ValueError):
            BcryptDigest().generate_salt(5, seed=b"short")

    def test_generate_salt_bad_cost(self):
        with pytest.raises(InvalidCost):
            BcryptDigest().generate_salt(40)

    def test_bare_salt_uses_default_cost(self):
        """A bare 22-char salt is hashed as 2b with the default cost."""
        digest = BcryptDigest().hash_with_salt("vapor", "TI13sbmh3IHnmRepeEFoJO")
        assert digest.startswith(f"$2b${DEFAULT_COST:02d}$TI13sbmh3IHnmRepeEFoJO")
        assert BcryptDigest().verify("vapor", digest)

    @pytest.mark.parametrize("salt", [
        "",
        "foo",
        "TI13sbmh3IHnmRepeEFoJ",                 # 21 chars
        "TI13sbmh3IHnmRepeEFoJO+",               # 23 chars
        "TI13sbmh3IHnmRepeEFo+O",                # bad character
        "$2x$04$TI13sbmh3IHnmRepeEFoJO",         # unknown revision
        "$2a$04$TI13sbmh3IHnmRepeEFoJ",          # 28 chars
        "$2a$04$TI13sbmh3IHnmRepeEFoJOO",        # 30 chars
        "$2a$99$TI13sbmh3IHnmRepeEFoJO",         # cost out of range
        "$2a$4$$TI13sbmh3IHnmRepeEFoJO",         # one-digit cost
    ])
    def test_invalid_salt(self, salt):
        """Malformed salts raise InvalidSalt."""
        assert not is_salt_valid(salt)
        with pytest.raises(InvalidSalt):
            BcryptDigest().hash_with_salt("vapor", salt)

    def test_2y_normalized_for_primitive(self):
        """The primitive only ever sees 2b for a 2y salt."""
        provider = RecordingProvider()
        BcryptDigest(provider).hash_with_salt("Vapor3", "$2y$04$kHM/VXmCVsGXDGIVu9mD8e")
        assert provider.salts == [b"$2b$04$kHM/VXmCVsGXDGIVu9mD8e"]


class TestMalformedHashes:
    """Malformed digests raise InvalidHash instead of returning False."""

    @pytest.mark.parametrize("digest", [
        "foo",
        "",
        "$2x$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm",   # revision
        "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZ",    # 59 chars
        "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZmm",  # 61 chars
        "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZ!",   # checksum char
        "$2a$99$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm",   # cost
        "$2a$04$TI13sbmh3IHnmRepeEFo+OkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm",   # salt char
    ])
    def test_invalid_hash(self, digest):
        with pytest.raises(InvalidHash):
            BcryptDigest().verify("vapor", digest)

    def test_invalid_hash_message(self):
        with pytest.raises(BcryptError) as exc_info:
            verify_password("", "foo")
        assert "Invalid hash formatting" in str(exc_info.value)


class TestPrimitiveFailures:
    """Primitive failures surface as distinct errors."""

    def test_hash_failure(self):
        with pytest.raises(HashFailure) as exc_info:
            BcryptDigest(FailingProvider()).hash("vapor", cost=4)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_hash_failure_not_false_on_verify(self):
        """A failing primitive is never reported as a mismatch."""
        digest = "$2a$04$TI13sbmh3IHnmRepeEFoJOkVZWsn5S1O8QOwm8ZU5gNIpJog9pXZm"
        with pytest.raises(HashFailure):
            BcryptDigest(FailingProvider()).verify("vapor", digest)

    def test_internal_error_on_empty_buffer(self):
        with pytest.raises(InternalError):
            BcryptDigest(EmptyBufferProvider()).hash("vapor", cost=4)


class TestBcryptHasher:
    """Tests for the PasswordHasher adapter."""

    def test_hash_and_verify(self):
        hasher = BcryptHasher(cost=4)
        digest = hasher.hash("vapor")
        assert isinstance(digest, bytes)
        assert digest != b"vapor"
        assert digest.startswith(b"$2b$04$")
        assert hasher.verify("vapor", digest)
        assert verify_password("vapor", digest)

    def test_verifies_hash_from_other_cost(self):
        """Verification uses the cost stored in the digest."""
        digest = hash_password("vapor", cost=5)
        assert BcryptHasher(cost=4).verify("vapor", digest)

    def test_default_cost(self):
        assert BcryptHasher().cost == DEFAULT_COST

    @pytest.mark.parametrize("cost", [3, 32])
    def test_invalid_cost(self, cost):
        with pytest.raises(InvalidCost):
            BcryptHasher(cost=cost)

    def test_checksum_length(self):
        digest = BcryptHasher(cost=4).hash("vapor").decode("ascii")
        assert len(digest[FULL_SALT_LENGTH:]) == CHECKSUM_LENGTH


class TestNonCanonicalSalts:
    """Salts whose last symbol carries unused low bits."""

    def test_bare_salt(self):
        """'a' * 22 hashes like its canonical form 'a' * 21 + 'O'."""
        digest = BcryptDigest().hash_with_salt("vapor", "a" * 22)
        assert digest.startswith(f"$2b${DEFAULT_COST:02d}$" + "a" * 21 + "O")
        assert BcryptDigest().verify("vapor", digest)

    def test_full_salt(self):
        """'9' * 22 hashes like its canonical form '9' * 21 + 'u'."""
        bcrypt = BcryptDigest()
        digest = bcrypt.hash_with_salt("vapor", "$2b$04$" + "9" * 22)
        canonical = bcrypt.hash_with_salt("vapor", "$2b$04$" + "9" * 21 + "u")
        assert digest == canonical
        assert bcrypt.verify("vapor", digest)

    def test_stored_digest_with_non_canonical_salt(self):
        """A stored digest written with the raw salt still verifies."""
        bcrypt = BcryptDigest()
        canonical = bcrypt.hash_with_salt("vapor", "$2b$04$" + "9" * 21 + "u")
        stored = "$2b$04$" + "9" * 22 + canonical[FULL_SALT_LENGTH:]
        assert bcrypt.verify("vapor", stored)
        assert not bcrypt.verify("Vapor", stored)

    @pytest.mark.parametrize("last", list("./ABCXYZabcxyz0189"))
    def test_every_final_symbol(self, last):
        salt = "$2a$04$" + "TI13sbmh3IHnmRepeEFoJ" + last
        digest = BcryptDigest().hash_with_salt("vapor", salt)
        assert len(digest) == DIGEST_LENGTH
        assert digest.startswith("$2a$04$TI13sbmh3IHnmRepeEFoJ")


class TestModuleSource:
    """Module text compiles cleanly."""

    def test_no_invalid_escape_sequences(self):
        path = Path(bcrypt_digest.__file__)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(path.read_text(encoding="utf-8"), str(path), "exec")
