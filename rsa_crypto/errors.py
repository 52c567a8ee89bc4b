"""Exception types raised by rsa_crypto.

Every failure is a CryptoError subclass. The ones that correspond to a builtin
category also derive from it, so callers catching ValueError or
FileNotFoundError keep working.
"""


class CryptoError(Exception):
    """Base class for all rsa_crypto errors."""


class InvalidParameter(CryptoError, ValueError):
    """Bad key size, empty password/path or unsupported algorithm name."""


class InvalidOperation(CryptoError):
    """The key cannot do what was asked (e.g. decrypting with a public key)."""


class InvalidFormat(CryptoError, ValueError):
    """Malformed PEM, key blob or packet."""


class NotFound(CryptoError, FileNotFoundError):
    """A required file or directory does not exist."""


class WrongPassword(CryptoError):
    """An encrypted private key could not be decrypted with the password."""


class DecryptionFailed(CryptoError):
    """Key unwrap or padding removal failed: wrong key or tampered data."""


class FileAccessError(CryptoError, OSError):
    """A file exists but could not be read or written (permissions, I/O errors)."""
