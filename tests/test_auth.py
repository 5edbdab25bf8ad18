import hashlib

import pytest

from article_platform import auth
from article_platform.auth import CredentialHasher, constant_time_equals, sensitive_buffer
from article_platform.errors import CryptoEnvironmentError, InvalidCredentialInput

ZERO_SALT = bytes(64)


def test_hash_is_deterministic_and_256_bits():
    h1 = auth.hash_password("correct horse", ZERO_SALT)
    h2 = auth.hash_password("correct horse", ZERO_SALT)
    assert h1 == h2
    assert len(h1) == 32


def test_correct_horse_scenario():
    stored = auth.hash_password("correct horse", ZERO_SALT)
    assert auth.hash_password("correct horsf", ZERO_SALT) != stored
    assert auth.verify_password("correct horse", ZERO_SALT, stored) is True
    assert auth.verify_password("correct horse ", ZERO_SALT, stored) is False


def test_matches_reference_pbkdf2_sha1():
    expected = hashlib.pbkdf2_hmac("sha1", "correct horse".encode("utf-8"), ZERO_SALT, 10_000, 32)
    assert auth.hash_password("correct horse", ZERO_SALT) == expected


def test_distinct_passwords_give_distinct_hashes():
    salt = auth.generate_salt()
    hashes = {auth.hash_password(f"password-{i}", salt) for i in range(50)}
    assert len(hashes) == 50


def test_same_password_different_salts():
    s1, s2 = auth.generate_salt(), auth.generate_salt()
    assert auth.hash_password("hunter2", s1) != auth.hash_password("hunter2", s2)


def test_salts_are_64_bytes_and_unique():
    salts = [auth.generate_salt() for _ in range(1000)]
    assert all(len(s) == 64 for s in salts)
    assert len(set(salts)) == len(salts)


def test_verify_roundtrip_and_wrong_password():
    salt = auth.generate_salt()
    stored = auth.hash_password("s3cret!", salt)
    assert auth.verify_password("s3cret!", salt, stored)
    assert not auth.verify_password("s3cret?", salt, stored)


def test_verify_rejects_wrong_length_hash():
    stored = auth.hash_password("pw", ZERO_SALT)
    assert auth.verify_password("pw", ZERO_SALT, stored[:-1]) is False
    assert auth.verify_password("pw", ZERO_SALT, stored + b"\x00") is False


@pytest.mark.parametrize("password", ["", None])
def test_empty_password_is_invalid_input(password):
    with pytest.raises(InvalidCredentialInput):
        auth.hash_password(password, ZERO_SALT)
    with pytest.raises(InvalidCredentialInput):
        auth.verify_password(password, ZERO_SALT, b"x" * 32)


@pytest.mark.parametrize("salt", [b"", bytes(16), bytes(65), "0" * 64, None])
def test_malformed_salt_is_invalid_input(salt):
    with pytest.raises(InvalidCredentialInput):
        auth.hash_password("pw", salt)


@pytest.mark.parametrize("expected", [b"", None, "abc"])
def test_missing_expected_hash_is_invalid_input(expected):
    with pytest.raises(InvalidCredentialInput):
        auth.verify_password("pw", ZERO_SALT, expected)


def test_injected_random_source():
    calls = []

    def fake_source(n):
        calls.append(n)
        return b"\x07" * n

    hasher = CredentialHasher(random_source=fake_source)
    assert hasher.generate_salt() == b"\x07" * 64
    assert calls == [64]


def test_random_source_failure_is_loud():
    def broken(n):
        raise OSError("no entropy")

    with pytest.raises(CryptoEnvironmentError):
        CredentialHasher(random_source=broken).generate_salt()


def test_random_source_short_read_is_loud():
    with pytest.raises(CryptoEnvironmentError):
        CredentialHasher(random_source=lambda n: b"\x01" * (n - 1)).generate_salt()


def test_weak_digest_refused():
    with pytest.raises(ValueError):
        CredentialHasher(digest="md5")


def test_stronger_digest_allowed():
    hasher = CredentialHasher(digest="sha256")
    assert hasher.hash_password("pw", ZERO_SALT) == hashlib.pbkdf2_hmac("sha256", b"pw", ZERO_SALT, 10_000, 32)


def test_missing_digest_is_environment_error(monkeypatch):
    def no_digest(name, *args, **kwargs):
        raise ValueError(f"unsupported hash type {name}")

    monkeypatch.setattr(auth.hashlib, "new", no_digest)
    with pytest.raises(CryptoEnvironmentError) as exc:
        CredentialHasher()
    assert isinstance(exc.value.__cause__, ValueError)


def test_missing_pbkdf2_is_environment_error(monkeypatch):
    monkeypatch.delattr(auth.hashlib, "pbkdf2_hmac")
    with pytest.raises(CryptoEnvironmentError):
        CredentialHasher()


def test_password_buffer_zeroed_after_hash(monkeypatch):
    hasher = CredentialHasher()
    seen = []
    real = hashlib.pbkdf2_hmac

    def spy(name, password, salt, iterations, dklen):
        seen.append(password)
        return real(name, bytes(password), salt, iterations, dklen)

    monkeypatch.setattr(auth.hashlib, "pbkdf2_hmac", spy)
    hasher.hash_password("correct horse", ZERO_SALT)
    assert isinstance(seen[0], bytearray)
    assert len(seen[0]) == len("correct horse")
    assert seen[0] == bytearray(len("correct horse"))


def test_password_buffer_zeroed_when_derivation_fails(monkeypatch):
    hasher = CredentialHasher()
    seen = []

    def failing(name, password, salt, iterations, dklen):
        seen.append(password)
        raise ValueError("unsupported hash type")

    monkeypatch.setattr(auth.hashlib, "pbkdf2_hmac", failing)
    with pytest.raises(CryptoEnvironmentError):
        hasher.hash_password("correct horse", ZERO_SALT)
    assert seen[0] == bytearray(len("correct horse"))


def test_sensitive_buffer_wipes_on_exception():
    with pytest.raises(RuntimeError):
        with sensitive_buffer("pässword") as buf:
            held = buf
            assert bytes(buf) == "pässword".encode("utf-8")
            raise RuntimeError("boom")
    assert not any(held)


def test_constant_time_equals_compares_full_length(monkeypatch):
    calls = []
    real = auth.hmac.compare_digest

    def spy(a, b):
        calls.append((a, b))
        return real(a, b)

    monkeypatch.setattr(auth.hmac, "compare_digest", spy)
    base = bytes(range(32))
    first = b"\xff" + base[1:]
    last = base[:-1] + b"\xff"
    assert constant_time_equals(base, first) is False
    assert constant_time_equals(base, last) is False
    assert constant_time_equals(base, bytearray(base)) is True
    # every equal-length comparison goes through compare_digest with both full inputs
    assert [(len(a), len(b)) for a, b in calls] == [(32, 32)] * 3


def test_constant_time_equals_length_mismatch_short_circuits(monkeypatch):
    def fail(a, b):
        raise AssertionError("should not compare unequal lengths")

    monkeypatch.setattr(auth.hmac, "compare_digest", fail)
    assert constant_time_equals(b"abc", b"abcd") is False
