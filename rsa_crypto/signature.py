import enum
import logging
from typing import Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .errors import InvalidFormat, InvalidParameter
from .key_pair import KeyPair

DEFAULT_HASH = 'SHA256'

log = logging.getLogger(__name__)


class HashAlgorithm(enum.Enum):
    SHA1 = hashes.SHA1
    SHA256 = hashes.SHA256
    SHA384 = hashes.SHA384
    SHA512 = hashes.SHA512

    def new(self) -> hashes.HashAlgorithm:
        return self.value()


def resolve_hash(name: Union[str, HashAlgorithm]) -> HashAlgorithm:
    """Map 'SHA256', 'sha-256', ... to a HashAlgorithm; anything else is InvalidParameter."""
    if isinstance(name, HashAlgorithm):
        return name
    if not isinstance(name, str) or not name.strip():
        raise InvalidParameter("Hash algorithm name must not be empty.")
    normalized = name.strip().upper().replace('-', '')
    try:
        return HashAlgorithm[normalized]
    except KeyError as e:
        supported = ', '.join(h.name for h in HashAlgorithm)
        raise InvalidParameter(f"Invalid hash algorithm name '{name}'. Supported: {supported}.") from e


def signature_length(key_pair: KeyPair) -> int:
    return (key_pair.key_size + 7) // 8


def sign(key_pair: KeyPair, data: bytes, hash_algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH) -> bytes:
    """Hash ``data`` and sign the digest with RSA PKCS#1 v1.5."""
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")
    private_key = key_pair.rsa_private_key()
    algorithm = resolve_hash(hash_algorithm)
    try:
        signature = private_key.sign(bytes(data), padding.PKCS1v15(), algorithm.new())
    except ValueError as e:
        # Digest plus DigestInfo does not fit in very small moduli
        raise InvalidParameter(f"{algorithm.name} cannot be used with a {key_pair.key_size}-bit key.") from e
    log.debug("Signed %d bytes with %s", len(data), algorithm.name)
    return signature


def verify(key_pair: KeyPair, data: bytes, signature: bytes,
           hash_algorithm: Union[str, HashAlgorithm] = DEFAULT_HASH) -> bool:
    """Return True only if ``signature`` is a valid signature of ``data``."""
    if not isinstance(data, (bytes, bytearray)) or not isinstance(signature, (bytes, bytearray)):
        raise TypeError("data and signature must be bytes")
    algorithm = resolve_hash(hash_algorithm)
    try:
        key_pair.rsa_public_key().verify(bytes(signature), bytes(data), padding.PKCS1v15(), algorithm.new())
    except InvalidSignature:
        log.debug("Signature mismatch (%s)", algorithm.name)
        return False
    return True


# --- Merged files: signature || data ---

def merge(signature: bytes, data: bytes) -> bytes:
    return bytes(signature) + bytes(data)


def split(key_pair: KeyPair, merged: bytes) -> Tuple[bytes, bytes]:
    """Split a merged blob into (signature, data) using the key's signature length."""
    size = signature_length(key_pair)
    if len(merged) < size:
        raise InvalidFormat(f"Merged data is shorter than a {size}-byte signature.")
    return bytes(merged[:size]), bytes(merged[size:])
