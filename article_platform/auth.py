"""Password hashing and verification utilities (using PBKDF2).

Salts and hashes are raw bytes; use `encode`/`decode` to move them in and out
of text columns.
"""
import base64
import binascii
import hashlib
import hmac
import logging
import secrets
from contextlib import contextmanager
from typing import Callable, Optional

from . import config
from .errors import CryptoEnvironmentError, InvalidCredentialInput, MalformedEncodingError

logger = logging.getLogger(__name__)

# PBKDF2 params
SALT_BYTES = 64
ITERATIONS = 10_000
KEY_BITS = 256
KEY_BYTES = KEY_BITS // 8

# HMAC-SHA1 is the floor; anything weaker is refused.
_ALLOWED_DIGESTS = ("sha1", "sha224", "sha256", "sha384", "sha512")

RandomSource = Callable[[int], bytes]


@contextmanager
def sensitive_buffer(text: str):
    """Yield the UTF-8 bytes of `text` in a bytearray that is zeroed on exit."""
    buf = bytearray(text.encode("utf-8"))
    try:
        yield buf
    finally:
        buf[:] = bytes(len(buf))


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Compare two byte strings over their full length.

    Lengths are not secret (hash length is fixed), so a length mismatch
    returns immediately.
    """
    if len(a) != len(b):
        return False
    return hmac.compare_digest(bytes(a), bytes(b))


def _check_digest(digest: str) -> None:
    if getattr(hashlib, "pbkdf2_hmac", None) is None:
        raise CryptoEnvironmentError("hashlib.pbkdf2_hmac is not available in this runtime")
    try:
        hashlib.new(digest)
    except ValueError as e:
        raise CryptoEnvironmentError(f"digest {digest!r} is not available for PBKDF2: {e}") from e


class CredentialHasher:
    """Salt generation, PBKDF2 key derivation and hash verification.

    `random_source(n)` must return `n` bytes from a cryptographically secure
    generator; it defaults to `secrets.token_bytes`.
    """

    def __init__(
        self,
        random_source: Optional[RandomSource] = None,
        digest: Optional[str] = None,
        iterations: int = ITERATIONS,
        salt_bytes: int = SALT_BYTES,
        key_bytes: int = KEY_BYTES,
    ):
        digest = (digest or config.pbkdf2_digest()).lower()
        if digest not in _ALLOWED_DIGESTS:
            raise ValueError(f"unsupported PBKDF2 digest {digest!r}; use one of {', '.join(_ALLOWED_DIGESTS)}")
        if iterations < 1 or salt_bytes < 1 or key_bytes < 1:
            raise ValueError("iterations, salt_bytes and key_bytes must be positive")
        _check_digest(digest)
        self.random_source = random_source or secrets.token_bytes
        self.digest = digest
        self.iterations = iterations
        self.salt_bytes = salt_bytes
        self.key_bytes = key_bytes

    def generate_salt(self) -> bytes:
        try:
            salt = self.random_source(self.salt_bytes)
        except (OSError, NotImplementedError) as e:
            raise CryptoEnvironmentError(f"secure random source unavailable: {e}") from e
        if not isinstance(salt, (bytes, bytearray)) or len(salt) != self.salt_bytes:
            raise CryptoEnvironmentError(
                f"random source returned {type(salt).__name__} of unexpected size; expected {self.salt_bytes} bytes"
            )
        return bytes(salt)

    def _check_salt(self, salt) -> None:
        if not isinstance(salt, (bytes, bytearray)):
            raise InvalidCredentialInput("salt must be bytes")
        if len(salt) != self.salt_bytes:
            raise InvalidCredentialInput(f"salt must be {self.salt_bytes} bytes, got {len(salt)}")

    def hash_password(self, password: str, salt: bytes) -> bytes:
        if not isinstance(password, str) or not password:
            raise InvalidCredentialInput("password must be a non-empty string")
        self._check_salt(salt)
        with sensitive_buffer(password) as pwd:
            try:
                return hashlib.pbkdf2_hmac(self.digest, pwd, bytes(salt), self.iterations, self.key_bytes)
            except ValueError as e:
                raise CryptoEnvironmentError(f"error while hashing a password: {e}") from e

    def verify_password(self, password: str, salt: bytes, expected_hash: bytes) -> bool:
        if not isinstance(expected_hash, (bytes, bytearray)) or not expected_hash:
            raise InvalidCredentialInput("expected hash must be non-empty bytes")
        candidate = self.hash_password(password, salt)
        return constant_time_equals(candidate, expected_hash)


def encode(data: bytes) -> str:
    """Standard base64, no line wrapping."""
    return base64.b64encode(bytes(data)).decode("ascii")


def decode(text: str, strict: Optional[bool] = None) -> bytes:
    """Invert `encode`.

    Text outside the base64 alphabet is re-encoded as raw bytes unless
    `strict` (or STRICT_DECODE) is set, in which case it is rejected.
    """
    if strict is None:
        strict = config.strict_decode()
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        if strict:
            raise MalformedEncodingError(f"not valid base64: {e}") from e
        logger.warning("decode fell back to re-encoding %d characters of non-base64 text", len(text))
        return base64.b64encode(text.encode("utf-8"))


_default: Optional[CredentialHasher] = None


def default_hasher() -> CredentialHasher:
    global _default
    if _default is None:
        _default = CredentialHasher()
    return _default


_by_digest = {}


def hasher_for(digest: str) -> CredentialHasher:
    """Hasher matching a stored record's digest, sharing the default's random source."""
    base = default_hasher()
    if digest == base.digest:
        return base
    if digest not in _by_digest:
        try:
            _by_digest[digest] = CredentialHasher(random_source=base.random_source, digest=digest)
        except ValueError as e:
            raise CryptoEnvironmentError(f"stored digest {digest!r} cannot be used: {e}") from e
    return _by_digest[digest]


def generate_salt() -> bytes:
    return default_hasher().generate_salt()


def hash_password(password: str, salt: bytes) -> bytes:
    return default_hasher().hash_password(password, salt)


def verify_password(password: str, salt: bytes, expected_hash: bytes) -> bool:
    return default_hasher().verify_password(password, salt, expected_hash)


__all__ = [
    "CredentialHasher",
    "constant_time_equals",
    "decode",
    "default_hasher",
    "encode",
    "generate_salt",
    "hash_password",
    "hasher_for",
    "sensitive_buffer",
    "verify_password",
]
