"""
Key encoding helpers: PEM armor, CryptoAPI key blobs and password-protected
PKCS#8. Everything here works on bytes; callers do the file I/O.

Key blob layout (all integers little-endian):
    BLOBHEADER   bType(1) bVersion(1) reserved(2) aiKeyAlg(4)
    RSAPUBKEY    magic(4) bitlen(4) pubexp(4)
    modulus      bitlen/8
    -- private blobs only --
    prime1, prime2, exponent1, exponent2, coefficient   bitlen/16 each
    privateExponent                                     bitlen/8
"""

import re
import struct
import logging
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .errors import InvalidFormat, InvalidParameter, WrongPassword

log = logging.getLogger(__name__)

RSAKey = Union[rsa.RSAPrivateKey, rsa.RSAPublicKey]

PUBLICKEYBLOB = 0x06
PRIVATEKEYBLOB = 0x07
BLOB_VERSION = 0x02
CALG_RSA_KEYX = 0x0000A400
MAGIC_PUBLIC = b'RSA1'
MAGIC_PRIVATE = b'RSA2'

_BLOB_HEADER = struct.Struct('<BBHI4sII')

ENCRYPTED_LABEL = 'ENCRYPTED PRIVATE KEY'
_PEM_LABEL_RE = re.compile(rb'-----BEGIN ([A-Z0-9 ]+)-----')


# --- PEM ---

def pem_label(data: bytes) -> Optional[str]:
    """Return the label of the first PEM block ('RSA PRIVATE KEY', ...) or None."""
    match = _PEM_LABEL_RE.search(data)
    if match is None:
        return None
    return match.group(1).decode('ascii')


def encode_public_pem(key: RSAKey) -> bytes:
    if isinstance(key, rsa.RSAPrivateKey):
        key = key.public_key()
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.PKCS1,
    )


def encode_private_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def decode_pem(data: bytes) -> RSAKey:
    """Load an unencrypted RSA key from PEM.

    PKCS#1 ('RSA PRIVATE KEY' / 'RSA PUBLIC KEY') and PKCS#8 / SubjectPublicKeyInfo
    ('PRIVATE KEY' / 'PUBLIC KEY') are accepted.
    """
    label = pem_label(data)
    if label is None:
        raise InvalidFormat("Data is not PEM encoded.")
    if label == ENCRYPTED_LABEL:
        raise InvalidFormat("PEM holds an encrypted private key; a password is required.")
    if not label.endswith(('PRIVATE KEY', 'PUBLIC KEY')):
        raise InvalidFormat(f"Unsupported PEM block '{label}'.")

    try:
        if label.endswith('PRIVATE KEY'):
            key = serialization.load_pem_private_key(data, password=None)
        else:
            key = serialization.load_pem_public_key(data)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidFormat("PEM does not contain a valid RSA key.") from e

    if not isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        raise InvalidFormat("PEM does not contain an RSA key.")
    return key


# --- Encrypted PKCS#8 ---

def encrypt_private_pkcs8(key: rsa.RSAPrivateKey, password: str) -> bytes:
    if not password or not password.strip():
        raise InvalidParameter("In order to export as an encrypted key a password is needed.")
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.BestAvailableEncryption(password.encode('utf-8')),
    )


def decrypt_private_pkcs8(data: bytes, password: str) -> rsa.RSAPrivateKey:
    if not password or not password.strip():
        raise InvalidParameter("A password is needed to import an encrypted key.")
    if pem_label(data) != ENCRYPTED_LABEL:
        raise InvalidFormat("File does not contain an encrypted PKCS#8 private key.")

    try:
        key = serialization.load_pem_private_key(data, password=password.encode('utf-8'))
    except (TypeError, UnsupportedAlgorithm) as e:
        raise InvalidFormat("Encrypted private key could not be parsed.") from e
    except ValueError as e:
        raise WrongPassword("Incorrect password or corrupted key file.") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidFormat("Encrypted key is not an RSA private key.")
    return key


# --- Key blobs ---

def _int_to_le(value: int, size: int) -> bytes:
    return value.to_bytes(size, 'little')


def _sizes(bitlen: int):
    return (bitlen + 7) // 8, (bitlen + 15) // 16


def encode_blob(key: RSAKey, include_private: bool = False) -> bytes:
    if include_private and not isinstance(key, rsa.RSAPrivateKey):
        raise InvalidParameter("A private key is required to encode a private blob.")

    public = key.public_key() if isinstance(key, rsa.RSAPrivateKey) else key
    pub = public.public_numbers()
    bitlen = key.key_size
    mod_len, half_len = _sizes(bitlen)

    blob_type, magic = (PRIVATEKEYBLOB, MAGIC_PRIVATE) if include_private else (PUBLICKEYBLOB, MAGIC_PUBLIC)
    out = bytearray()
    out += _BLOB_HEADER.pack(blob_type, BLOB_VERSION, 0, CALG_RSA_KEYX, magic, bitlen, pub.e)
    out += _int_to_le(pub.n, mod_len)

    if include_private:
        priv = key.private_numbers()
        for value in (priv.p, priv.q, priv.dmp1, priv.dmq1, priv.iqmp):
            out += _int_to_le(value, half_len)
        out += _int_to_le(priv.d, mod_len)
    return bytes(out)


def decode_blob(blob: bytes) -> RSAKey:
    if len(blob) < _BLOB_HEADER.size:
        raise InvalidFormat("Key blob is too short.")

    blob_type, version, _, alg_id, magic, bitlen, pubexp = _BLOB_HEADER.unpack_from(blob, 0)
    if version != BLOB_VERSION or alg_id != CALG_RSA_KEYX:
        raise InvalidFormat("Unsupported key blob version or algorithm.")
    if (blob_type, magic) not in ((PUBLICKEYBLOB, MAGIC_PUBLIC), (PRIVATEKEYBLOB, MAGIC_PRIVATE)):
        raise InvalidFormat("Key blob type does not match its magic.")
    if bitlen == 0:
        raise InvalidFormat("Key blob declares a zero bit length.")

    mod_len, half_len = _sizes(bitlen)
    expected = _BLOB_HEADER.size + mod_len
    if blob_type == PRIVATEKEYBLOB:
        expected += 5 * half_len + mod_len
    if len(blob) != expected:
        raise InvalidFormat(f"Key blob length {len(blob)} does not match expected {expected}.")

    log.debug("Decoding %s key blob, bitlen=%d", "private" if blob_type == PRIVATEKEYBLOB else "public", bitlen)
    offset = _BLOB_HEADER.size

    def take(size: int) -> int:
        nonlocal offset
        value = int.from_bytes(blob[offset:offset + size], 'little')
        offset += size
        return value

    try:
        public_numbers = rsa.RSAPublicNumbers(pubexp, take(mod_len))
        if blob_type == PUBLICKEYBLOB:
            return public_numbers.public_key()

        p, q, dmp1, dmq1, iqmp = (take(half_len) for _ in range(5))
        d = take(mod_len)
        return rsa.RSAPrivateNumbers(
            p=p, q=q, d=d, dmp1=dmp1, dmq1=dmq1, iqmp=iqmp,
            public_numbers=public_numbers,
        ).private_key()
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise InvalidFormat("Key blob parameters are not a valid RSA key.") from e
