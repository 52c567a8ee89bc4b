import pytest

from rsa_crypto import KeyPair


@pytest.fixture(scope="session")
def key_dir(tmp_path_factory):
    """Directory holding 'priv.key.pem' and 'pub.key.pem' for a fresh 2048-bit key."""
    directory = tmp_path_factory.mktemp("keys")
    key_pair = KeyPair.generate(2048)
    key_pair.export_pem(str(directory), include_private=True)
    key_pair.export_pem(str(directory), include_private=False)
    return directory


@pytest.fixture(scope="session")
def private_key(key_dir):
    return KeyPair.import_pem(str(key_dir / "priv.key.pem"))


@pytest.fixture(scope="session")
def public_key(key_dir):
    return KeyPair.import_pem(str(key_dir / "pub.key.pem"))


@pytest.fixture(scope="session")
def other_private_key():
    return KeyPair.generate(2048)
