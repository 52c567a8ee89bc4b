"""
RSA + AES hybrid encryption, signing and key management.

High-level API:
- KeyPair.generate(key_size=2048) -> KeyPair
- KeyPair.import_pem(path) / import_blob(blob) / import_encrypted_private(password, path) -> KeyPair
- key_pair.export_pem(path, filename, include_private) / export_blob(include_private) / export_encrypted_private(password, path, filename)
- encrypt(key_pair, plaintext) -> packet bytes
- decrypt(key_pair, packet) -> plaintext bytes
- sign(key_pair, data, hash_algorithm) -> signature bytes
- verify(key_pair, data, signature, hash_algorithm) -> bool

Exceptions are raised on errors instead of printing; all derive from CryptoError.
"""

from .errors import (
    CryptoError,
    InvalidParameter,
    InvalidOperation,
    InvalidFormat,
    NotFound,
    WrongPassword,
    DecryptionFailed,
    FileAccessError,
)
from .key_pair import KeyPair, DEFAULT_KEY_SIZE
from .hybrid import encrypt, decrypt, encrypt_rsa, decrypt_rsa, parse_header, PacketHeader
from .signature import sign, verify, merge, split, HashAlgorithm, resolve_hash
from .file_io import read_bytes, write_bytes

__all__ = [
    "CryptoError",
    "InvalidParameter",
    "InvalidOperation",
    "InvalidFormat",
    "NotFound",
    "WrongPassword",
    "DecryptionFailed",
    "FileAccessError",
    "KeyPair",
    "DEFAULT_KEY_SIZE",
    "encrypt",
    "decrypt",
    "encrypt_rsa",
    "decrypt_rsa",
    "parse_header",
    "PacketHeader",
    "sign",
    "verify",
    "merge",
    "split",
    "HashAlgorithm",
    "resolve_hash",
    "read_bytes",
    "write_bytes",
]
