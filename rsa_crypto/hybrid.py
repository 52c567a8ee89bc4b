"""
Hybrid RSA + AES-256-CBC encryption.

Packet format (little-endian u32 lengths):
    [lenK][lenIV][wrapped AES key (lenK)][IV (lenIV)][AES-CBC ciphertext, PKCS#7 padded]

The AES key is wrapped with RSA PKCS#1 v1.5, not OAEP, so that packets stay
readable by existing implementations of this format.
"""

import os
import struct
import logging
from typing import NamedTuple

from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import DecryptionFailed, InvalidFormat, InvalidParameter
from .key_pair import KeyPair

AES_KEY_SIZE = 32
AES_BLOCK_SIZE = 16
HEADER_SIZE = 8
PKCS1_OVERHEAD = 11

_HEADER = struct.Struct('<II')

log = logging.getLogger(__name__)


class PacketHeader(NamedTuple):
    key_length: int
    iv_length: int

    @property
    def ciphertext_offset(self) -> int:
        return HEADER_SIZE + self.key_length + self.iv_length


def _zeroize(buf: bytearray) -> None:
    for i in range(len(buf)):
        buf[i] = 0


def _blocks(data: bytes, size: int = AES_BLOCK_SIZE):
    view = memoryview(data)
    for offset in range(0, len(view), size):
        yield view[offset:offset + size]


# --- Raw RSA ---

def max_rsa_payload(key_pair: KeyPair) -> int:
    return key_pair.key_size // 8 - PKCS1_OVERHEAD


def encrypt_rsa(key_pair: KeyPair, data: bytes) -> bytes:
    """Encrypt a small payload directly with RSA PKCS#1 v1.5."""
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")
    limit = max_rsa_payload(key_pair)
    if len(data) > limit:
        raise InvalidParameter(f"Data too long for a {key_pair.key_size}-bit key: {len(data)} > {limit} bytes.")
    return key_pair.rsa_public_key().encrypt(bytes(data), padding.PKCS1v15())


def decrypt_rsa(key_pair: KeyPair, data: bytes) -> bytes:
    """Decrypt RSA PKCS#1 v1.5 ciphertext. Requires the private key."""
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")
    private_key = key_pair.rsa_private_key()
    try:
        return private_key.decrypt(bytes(data), padding.PKCS1v15())
    except ValueError as e:
        raise DecryptionFailed("RSA decryption failed: wrong key or corrupted data.") from e


# --- Packets ---

def parse_header(packet: bytes) -> PacketHeader:
    """Read and validate the packet header against the packet length."""
    if len(packet) < HEADER_SIZE:
        raise InvalidFormat("Packet is shorter than its header.")

    header = PacketHeader(*_HEADER.unpack_from(packet, 0))
    if header.ciphertext_offset > len(packet):
        raise InvalidFormat(
            f"Packet header declares {header.ciphertext_offset} header bytes but packet has {len(packet)}."
        )
    if header.iv_length != AES_BLOCK_SIZE:
        raise InvalidFormat(f"Unexpected IV length {header.iv_length}.")

    ciphertext_length = len(packet) - header.ciphertext_offset
    if ciphertext_length == 0 or ciphertext_length % AES_BLOCK_SIZE != 0:
        raise InvalidFormat(f"Ciphertext length {ciphertext_length} is not a positive multiple of {AES_BLOCK_SIZE}.")
    return header


def encrypt(key_pair: KeyPair, plaintext: bytes) -> bytes:
    """Encrypt ``plaintext`` into a packet. Only the public half of the key is used."""
    if not isinstance(plaintext, (bytes, bytearray)):
        raise TypeError("plaintext must be bytes")

    aes_key = bytearray(os.urandom(AES_KEY_SIZE))
    iv = os.urandom(AES_BLOCK_SIZE)
    try:
        enc_aes_key = encrypt_rsa(key_pair, aes_key)

        cipher = Cipher(algorithms.AES(bytes(aes_key)), modes.CBC(iv))
        encryptor = cipher.encryptor()
        padder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).padder()

        out = bytearray()
        out += _HEADER.pack(len(enc_aes_key), len(iv))
        out += enc_aes_key
        out += iv

        # Stream one cipher block at a time
        for block in _blocks(plaintext):
            out += encryptor.update(padder.update(block))
        out += encryptor.update(padder.finalize())
        out += encryptor.finalize()
    finally:
        _zeroize(aes_key)

    log.debug("Encrypted %d bytes into %d-byte packet (lenK=%d)", len(plaintext), len(out), len(enc_aes_key))
    return bytes(out)


def decrypt(key_pair: KeyPair, packet: bytes) -> bytes:
    """Decrypt a packet produced by ``encrypt``. Requires the private key."""
    if not isinstance(packet, (bytes, bytearray)):
        raise TypeError("packet must be bytes")
    # Fail fast on public-only keys before touching the packet
    key_pair.rsa_private_key()

    header = parse_header(packet)
    key_end = HEADER_SIZE + header.key_length
    enc_aes_key = bytes(packet[HEADER_SIZE:key_end])
    iv = bytes(packet[key_end:header.ciphertext_offset])
    ciphertext = bytes(packet[header.ciphertext_offset:])
    log.debug("Packet header: lenK=%d lenIV=%d ciphertext=%d", header.key_length, header.iv_length, len(ciphertext))

    aes_key = bytearray(decrypt_rsa(key_pair, enc_aes_key))
    try:
        if len(aes_key) != AES_KEY_SIZE:
            raise DecryptionFailed("Unwrapped key has an unexpected length: wrong key or corrupted data.")

        cipher = Cipher(algorithms.AES(bytes(aes_key)), modes.CBC(iv))
        decryptor = cipher.decryptor()
        unpadder = sym_padding.PKCS7(AES_BLOCK_SIZE * 8).unpadder()

        out = bytearray()
        for block in _blocks(ciphertext):
            out += unpadder.update(decryptor.update(block))
        out += unpadder.update(decryptor.finalize())
        try:
            out += unpadder.finalize()
        except ValueError as e:
            raise DecryptionFailed("Invalid padding: wrong key or corrupted data.") from e
    finally:
        _zeroize(aes_key)

    return bytes(out)
