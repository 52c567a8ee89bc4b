import struct

import pytest

from rsa_crypto import (
    DecryptionFailed,
    InvalidFormat,
    InvalidOperation,
    InvalidParameter,
    decrypt,
    decrypt_rsa,
    encrypt,
    encrypt_rsa,
    parse_header,
)
from rsa_crypto.hybrid import AES_BLOCK_SIZE, HEADER_SIZE


@pytest.mark.parametrize("size", [0, 1, 15, 16, 17, 37, 1000, 64 * 1024 + 3])
def test_round_trip(private_key, public_key, size):
    data = bytes(range(256)) * (size // 256) + bytes(range(size % 256))
    packet = encrypt(public_key, data)
    assert decrypt(private_key, packet) == data


def test_packet_layout_for_37_bytes(private_key, public_key):
    data = b"x" * 37
    packet = encrypt(public_key, data)

    len_k, len_iv = struct.unpack_from("<II", packet, 0)
    assert len_k == 256
    assert len_iv == 16
    assert len(packet) == 8 + len_k + len_iv + 48
    assert decrypt(private_key, packet) == data


def test_parse_header(public_key):
    packet = encrypt(public_key, b"hello")
    header = parse_header(packet)
    assert header.key_length == 256
    assert header.iv_length == 16
    assert header.ciphertext_offset == HEADER_SIZE + 256 + 16
    assert len(packet) - header.ciphertext_offset == AES_BLOCK_SIZE


def test_fresh_key_and_iv_per_packet(public_key):
    data = b"same plaintext"
    assert encrypt(public_key, data) != encrypt(public_key, data)


def test_encrypt_with_private_key_pair(private_key):
    packet = encrypt(private_key, b"payload")
    assert decrypt(private_key, packet) == b"payload"


def test_decrypt_with_public_only_key_fails(public_key):
    packet = encrypt(public_key, b"payload")
    with pytest.raises(InvalidOperation):
        decrypt(public_key, packet)


def test_decrypt_with_wrong_key_fails(public_key, other_private_key):
    packet = encrypt(public_key, b"payload for someone else")
    with pytest.raises(DecryptionFailed):
        decrypt(other_private_key, packet)


@pytest.mark.parametrize("packet", [b"", b"\x00" * 7])
def test_packet_shorter_than_header(private_key, packet):
    with pytest.raises(InvalidFormat):
        decrypt(private_key, packet)


def test_header_longer_than_packet(private_key, public_key):
    packet = bytearray(encrypt(public_key, b"abc"))
    struct.pack_into("<I", packet, 0, 100000)
    with pytest.raises(InvalidFormat):
        decrypt(private_key, bytes(packet))


def test_truncated_ciphertext(private_key, public_key):
    packet = encrypt(public_key, b"a" * 40)
    with pytest.raises(InvalidFormat):
        decrypt(private_key, packet[:-5])
    with pytest.raises(InvalidFormat):
        parse_header(packet[:HEADER_SIZE + 256 + 16])


def test_tampering_never_returns_original(private_key, public_key):
    data = b"The quick brown fox jumps over the lazy dog"
    packet = encrypt(public_key, data)
    offsets = [0, 1, 3, 4, 7, 8, 100, HEADER_SIZE + 255, HEADER_SIZE + 256, HEADER_SIZE + 271,
               HEADER_SIZE + 272, len(packet) - 17, len(packet) - 1]

    for offset in offsets:
        tampered = bytearray(packet)
        tampered[offset] ^= 0xFF
        try:
            result = decrypt(private_key, bytes(tampered))
        except (InvalidFormat, DecryptionFailed):
            continue
        assert result != data, f"tampering at offset {offset} went unnoticed"


def test_plaintext_must_be_bytes(public_key):
    with pytest.raises(TypeError):
        encrypt(public_key, "text")


def test_rsa_round_trip(private_key, public_key):
    assert decrypt_rsa(private_key, encrypt_rsa(public_key, b"short secret")) == b"short secret"


def test_rsa_payload_limit(public_key):
    assert len(encrypt_rsa(public_key, b"a" * 245)) == 256
    with pytest.raises(InvalidParameter):
        encrypt_rsa(public_key, b"a" * 246)


def test_rsa_decrypt_requires_private_key(public_key):
    with pytest.raises(InvalidOperation):
        decrypt_rsa(public_key, encrypt_rsa(public_key, b"x"))
