import pytest

from rsa_crypto import InvalidFormat, InvalidParameter
from rsa_crypto import key_codec


def test_pem_label(private_key, public_key):
    assert key_codec.pem_label(private_key.to_pem(include_private=True)) == "RSA PRIVATE KEY"
    assert key_codec.pem_label(public_key.to_pem()) == "RSA PUBLIC KEY"
    assert key_codec.pem_label(b"no armor here") is None


def test_decode_pem_rejects_other_blocks():
    with pytest.raises(InvalidFormat):
        key_codec.decode_pem(b"-----BEGIN CERTIFICATE-----\nAAAA\n-----END CERTIFICATE-----\n")


def test_decode_pem_rejects_encrypted(private_key):
    data = key_codec.encrypt_private_pkcs8(private_key.rsa_private_key(), "pw")
    with pytest.raises(InvalidFormat):
        key_codec.decode_pem(data)


def test_encrypt_private_requires_password(private_key):
    with pytest.raises(InvalidParameter):
        key_codec.encrypt_private_pkcs8(private_key.rsa_private_key(), "   ")


def test_blob_lengths(private_key):
    key = private_key.rsa_private_key()
    assert len(key_codec.encode_blob(key)) == 20 + 256
    assert len(key_codec.encode_blob(key, include_private=True)) == 20 + 256 + 5 * 128 + 256


def test_public_blob_layout(public_key):
    blob = key_codec.encode_blob(public_key.rsa_public_key())
    assert blob[:8] == bytes([0x06, 0x02, 0x00, 0x00, 0x00, 0xA4, 0x00, 0x00])
    assert blob[8:12] == b"RSA1"
    assert int.from_bytes(blob[12:16], "little") == 2048
    assert int.from_bytes(blob[16:20], "little") == 65537
    assert int.from_bytes(blob[20:], "little") == public_key.public_numbers.n


def test_private_blob_from_public_key(public_key):
    with pytest.raises(InvalidParameter):
        key_codec.encode_blob(public_key.rsa_public_key(), include_private=True)


def test_decode_blob_rejects_mismatched_magic(public_key):
    blob = bytearray(key_codec.encode_blob(public_key.rsa_public_key()))
    blob[8:12] = b"RSA2"
    with pytest.raises(InvalidFormat):
        key_codec.decode_blob(bytes(blob))


def test_decode_blob_rejects_inconsistent_private_numbers(private_key):
    blob = bytearray(key_codec.encode_blob(private_key.rsa_private_key(), include_private=True))
    blob[-1] ^= 0x01
    with pytest.raises(InvalidFormat):
        key_codec.decode_blob(bytes(blob))


def test_decode_blob_rejects_wrong_length(public_key):
    blob = key_codec.encode_blob(public_key.rsa_public_key())
    with pytest.raises(InvalidFormat):
        key_codec.decode_blob(blob[:-1])
