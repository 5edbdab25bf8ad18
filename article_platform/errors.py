"""Exception types shared by the credential core and its callers."""


class CredentialError(Exception):
    """Base class for credential handling errors."""


class CryptoEnvironmentError(CredentialError, RuntimeError):
    """A required cryptographic primitive or entropy source is unavailable."""


class InvalidCredentialInput(CredentialError, ValueError):
    """Password, salt or hash rejected before any derivation work."""


class MalformedEncodingError(CredentialError, ValueError):
    """Text is not valid standard base64 (strict decoding only)."""


class InvalidArticleInput(ValueError):
    """Article payload field of the wrong type or range."""


class UserExistsError(CredentialError):
    pass


__all__ = [
    "CredentialError",
    "CryptoEnvironmentError",
    "InvalidArticleInput",
    "InvalidCredentialInput",
    "MalformedEncodingError",
    "UserExistsError",
]
