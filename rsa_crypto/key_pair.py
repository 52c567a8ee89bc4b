import os
import base64
import binascii
import logging
from typing import Union

import rsa as pyrsa
from cryptography.hazmat.primitives.asymmetric import rsa

from . import key_codec
from .errors import InvalidFormat, InvalidOperation, InvalidParameter, NotFound
from .file_io import read_bytes, write_bytes

DEFAULT_KEY_SIZE = 2048
MIN_KEY_SIZE = 384
MAX_KEY_SIZE = 16384
KEY_SIZE_STEP = 8
PUBLIC_EXPONENT = 65537
BACKEND_MIN_KEY_SIZE = 1024

PUBLIC_PREFIX = 'pub'
PRIVATE_PREFIX = 'priv'
ENCRYPTED_PREFIX = 'enc'

log = logging.getLogger(__name__)


def _check_directory(path: str) -> None:
    if not path or not path.strip():
        raise InvalidParameter("Directory not specified.")
    if not os.path.isdir(path):
        raise NotFound(f"Directory '{path}' not found.")


def _generate_small_key(key_size: int) -> rsa.RSAPrivateKey:
    _, priv = pyrsa.newkeys(key_size, accurate=True, exponent=PUBLIC_EXPONENT)
    numbers = rsa.RSAPrivateNumbers(
        p=priv.p, q=priv.q, d=priv.d,
        dmp1=priv.exp1, dmq1=priv.exp2, iqmp=priv.coef,
        public_numbers=rsa.RSAPublicNumbers(priv.e, priv.n),
    )
    return numbers.private_key()


def _check_file(path: str) -> None:
    if not path or not path.strip():
        raise InvalidParameter("Path must not be empty.")
    if not os.path.isfile(path):
        raise NotFound(f"File '{path}' not found.")


class KeyPair:
    """An RSA key, either a full key pair or its public half only.

    Instances are immutable. Build them with ``generate`` or one of the
    ``import_*`` / ``from_*`` constructors; the hybrid and signature functions
    take a KeyPair per call and never keep it.
    """

    __slots__ = ('_key',)

    def __init__(self, key: Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]):
        if not isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
            raise InvalidParameter("KeyPair requires an RSA private or public key.")
        object.__setattr__(self, '_key', key)

    def __setattr__(self, name, value):
        raise AttributeError("KeyPair is immutable")

    def __eq__(self, other):
        if not isinstance(other, KeyPair):
            return NotImplemented
        return (self.public_only == other.public_only
                and self.public_numbers == other.public_numbers)

    def __hash__(self):
        return hash((self.public_only, self.public_numbers.n, self.public_numbers.e))

    def __repr__(self):
        kind = 'public' if self.public_only else 'private'
        return f"KeyPair(key_size={self.key_size}, {kind})"

    # --- Properties ---

    @property
    def key_size(self) -> int:
        return self._key.key_size

    @property
    def public_only(self) -> bool:
        return not isinstance(self._key, rsa.RSAPrivateKey)

    @property
    def public_numbers(self) -> rsa.RSAPublicNumbers:
        return self.rsa_public_key().public_numbers()

    @property
    def private_numbers(self) -> rsa.RSAPrivateNumbers:
        return self.rsa_private_key().private_numbers()

    def rsa_public_key(self) -> rsa.RSAPublicKey:
        if self.public_only:
            return self._key
        return self._key.public_key()

    def rsa_private_key(self) -> rsa.RSAPrivateKey:
        """Return the private key, failing with InvalidOperation on a public-only key."""
        if self.public_only:
            raise InvalidOperation("Key is public only; private key material is not available.")
        return self._key

    def public_key(self) -> 'KeyPair':
        """A public-only KeyPair for the same modulus."""
        return KeyPair(self.rsa_public_key())

    # --- Generation ---

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE) -> 'KeyPair':
        """Generate a new RSA key pair.

        key_size must lie in [384, 16384] and be a multiple of 8. The cryptography
        backend will not generate moduli under 1024 bits, so those come from the
        pure-Python rsa package and are loaded back into a cryptography key.
        """
        if isinstance(key_size, bool) or not isinstance(key_size, int):
            raise InvalidParameter("Key size must be an integer.")
        if key_size < MIN_KEY_SIZE or key_size > MAX_KEY_SIZE:
            raise InvalidParameter(f"Key size must be between {MIN_KEY_SIZE} and {MAX_KEY_SIZE} bits.")
        if key_size % KEY_SIZE_STEP != 0:
            raise InvalidParameter(f"Key size must be in increments of {KEY_SIZE_STEP} bits starting at {MIN_KEY_SIZE}.")

        if key_size < BACKEND_MIN_KEY_SIZE:
            key = _generate_small_key(key_size)
        else:
            key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
        log.debug("Generated %d-bit RSA key pair", key_size)
        return cls(key)

    # --- PEM ---

    def to_pem(self, include_private: bool = False) -> bytes:
        if include_private:
            if self.public_only:
                raise InvalidOperation("Impossible to export private content from a public key.")
            return key_codec.encode_private_pem(self._key)
        return key_codec.encode_public_pem(self._key)

    def export_pem(self, path: str, filename: str = 'key', include_private: bool = False) -> str:
        """Write 'pub.<filename>.pem' or 'priv.<filename>.pem' into directory ``path``.

        Returns the path of the written file, which is marked read-only.
        """
        _check_directory(path)
        content = self.to_pem(include_private)
        prefix = PRIVATE_PREFIX if include_private else PUBLIC_PREFIX
        return write_bytes(os.path.join(path, f"{prefix}.{filename}.pem"), content, read_only=True)

    @classmethod
    def from_pem(cls, data: bytes) -> 'KeyPair':
        return cls(key_codec.decode_pem(data))

    @classmethod
    def import_pem(cls, path: str) -> 'KeyPair':
        _check_file(path)
        return cls.from_pem(read_bytes(path))

    # --- Blob ---

    def export_blob(self, include_private: bool = False) -> str:
        if include_private and self.public_only:
            raise InvalidOperation("Impossible to export private content from a public key.")
        blob = key_codec.encode_blob(self._key, include_private)
        return base64.b64encode(blob).decode('ascii')

    @classmethod
    def import_blob(cls, blob: str, public_only: bool = False) -> 'KeyPair':
        """Import a base64 key blob. ``public_only`` drops the private half of a private blob."""
        if not blob or not blob.strip():
            raise InvalidParameter("Blob key must not be empty.")
        try:
            raw = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidFormat("Could not import key: blob is not valid base64.") from e

        key_pair = cls(key_codec.decode_blob(raw))
        if public_only:
            return key_pair.public_key()
        return key_pair

    # --- Encrypted PKCS#8 ---

    def export_encrypted_private(self, password: str, path: str, filename: str = 'key') -> str:
        """Write the private key as a password-encrypted PKCS#8 file 'enc.<filename>.pem'."""
        if not password or not password.strip():
            raise InvalidParameter("In order to export as an encrypted key a password is needed.")
        _check_directory(path)
        if self.public_only:
            raise InvalidOperation("Must be a private key to export as an encrypted key.")

        content = key_codec.encrypt_private_pkcs8(self._key, password)
        return write_bytes(os.path.join(path, f"{ENCRYPTED_PREFIX}.{filename}.pem"), content, read_only=True)

    @classmethod
    def import_encrypted_private(cls, password: str, path: str) -> 'KeyPair':
        if not password or not password.strip():
            raise InvalidParameter("A password is needed to import an encrypted key.")
        _check_file(path)
        return cls(key_codec.decrypt_private_pkcs8(read_bytes(path), password))
