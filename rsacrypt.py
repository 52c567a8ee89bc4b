import argparse
import os
import logging
from typing import Optional, Tuple

from rsa_crypto import (
    CryptoError,
    DEFAULT_KEY_SIZE,
    KeyPair,
    encrypt,
    decrypt,
    sign,
    verify,
    merge,
    split,
    read_bytes,
    write_bytes,
)
from rsa_crypto.signature import DEFAULT_HASH, resolve_hash

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# Default RSA public key used by --encrypt when no -i is given
RSA_default_public_key_path = os.getenv('RSACRYPT_PUBLIC_KEY', '~/.rsacrypt/pub.key.pem')
RSA_default_public_key = os.path.expanduser(RSA_default_public_key_path)

ENCRYPTED_SUFFIX = '.encrypted'
DECRYPTED_SUFFIX = '.decrypted'
MERGED_SUFFIX = '.merged'

log = logging.getLogger('rsacrypt')


def _default_key_size() -> int:
    override = os.getenv('RSACRYPT_KEY_SIZE')
    if override:
        try:
            return int(override)
        except ValueError as exc:
            raise ValueError("RSACRYPT_KEY_SIZE must be an integer") from exc
    return DEFAULT_KEY_SIZE


def _load_key(key_path: str, password: Optional[str] = None) -> KeyPair:
    if password:
        return KeyPair.import_encrypted_private(password, key_path)
    return KeyPair.import_pem(key_path)


def generate_key(key_size: int, verbose: bool, output: str, filename: str = 'key',
                 password: Optional[str] = None) -> Tuple[str, str]:
    """Generate a key pair into directory ``output``.

    Writes 'priv.<filename>.pem' (or 'enc.<filename>.pem' when a password is
    given) and 'pub.<filename>.pem'. Returns (private_path, public_path).
    """
    level = logging.INFO if verbose else logging.DEBUG
    log.log(level, "Generating %d-bit RSA key pair", key_size)
    key_pair = KeyPair.generate(key_size)

    if password:
        private_path = key_pair.export_encrypted_private(password, output, filename)
    else:
        private_path = key_pair.export_pem(output, filename, include_private=True)
    public_path = key_pair.export_pem(output, filename, include_private=False)

    log.info("RSA keys saved to '%s' and '%s'", private_path, public_path)
    return private_path, public_path


def encrypt_file(input_path: str, key_path: str, output_path: Optional[str] = None) -> str:
    if output_path is None:
        output_path = f"{input_path}{ENCRYPTED_SUFFIX}"
    key_pair = KeyPair.import_pem(key_path)
    packet = encrypt(key_pair, read_bytes(input_path))
    return write_bytes(output_path, packet)


def decrypt_file(input_path: str, key_path: str, output_path: Optional[str] = None,
                 password: Optional[str] = None) -> str:
    if output_path is None:
        if input_path.endswith(ENCRYPTED_SUFFIX):
            output_path = input_path[:-len(ENCRYPTED_SUFFIX)]
        else:
            output_path = f"{input_path}{DECRYPTED_SUFFIX}"
    key_pair = _load_key(key_path, password)
    plaintext = decrypt(key_pair, read_bytes(input_path))
    return write_bytes(output_path, plaintext)


def sign_file(input_path: str, key_path: str, hash_algorithm: str = DEFAULT_HASH,
              output_path: Optional[str] = None, merged: bool = False,
              password: Optional[str] = None) -> str:
    """Sign a file, writing '<file>.<HASH>' or, when ``merged``, '<file>.merged' (signature || data)."""
    key_pair = _load_key(key_path, password)
    data = read_bytes(input_path)
    signature = sign(key_pair, data, hash_algorithm)

    if merged:
        if output_path is None:
            output_path = f"{input_path}{MERGED_SUFFIX}"
        return write_bytes(output_path, merge(signature, data))

    if output_path is None:
        output_path = f"{input_path}.{resolve_hash(hash_algorithm).name}"
    return write_bytes(output_path, signature)


def verify_file(input_path: str, key_path: str, hash_algorithm: str = DEFAULT_HASH,
                signature_path: Optional[str] = None) -> bool:
    """Verify a detached signature, or a merged file when ``signature_path`` is None."""
    key_pair = KeyPair.import_pem(key_path)
    content = read_bytes(input_path)
    if signature_path is None:
        signature, data = split(key_pair, content)
    else:
        signature, data = read_bytes(signature_path), content
    return verify(key_pair, data, signature, hash_algorithm)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="RSA-AES Hybrid Encryption Tool")

    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument('--newkey', action='store_true', help='Generate RSA key pair')
    action_group.add_argument('-e', '--encrypt', metavar='FILE', help='Encrypt file using RSA-AES')
    action_group.add_argument('-d', '--decrypt', metavar='FILE', help='Decrypt file using RSA-AES')
    action_group.add_argument('--sign', metavar='FILE', help='Sign file with a private key')
    action_group.add_argument('--verify', metavar='FILE', help='Verify a signed or merged file with a public key')

    parser.add_argument('-i', '--keyfile', help=f'RSA key file (public key for encryption/verification, private key for decryption/signing), Default:{RSA_default_public_key_path}')
    parser.add_argument('--keysize', type=int, help=f'Key size in bits, Default:{DEFAULT_KEY_SIZE}')
    parser.add_argument('--keyfilename', default='key', help='Base name of generated key files')
    parser.add_argument('--password', help='Password for an encrypted private key')
    parser.add_argument('-o', '--output', help='Output file, or output directory for --newkey')
    parser.add_argument('--signature', help='Detached signature file for --verify')
    parser.add_argument('--hashalg', default=DEFAULT_HASH, help=f'Hash algorithm for signing, Default:{DEFAULT_HASH}')
    parser.add_argument('--merge', action='store_true', help='Write signature and data into one merged file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose output')

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)

    # Parameter validation
    if args.keysize is None:
        try:
            args.keysize = _default_key_size()
        except ValueError as e:
            parser.error(str(e))

    if (args.decrypt or args.sign or args.verify) and not args.keyfile:
        parser.error("-d, --sign and --verify require -i (key file).")
    if args.encrypt and not args.keyfile:
        if os.path.exists(RSA_default_public_key):
            args.keyfile = RSA_default_public_key
        else:
            parser.error("-e requires -i (key file).")

    try:
        if args.newkey:
            generate_key(args.keysize, args.verbose, args.output or os.getcwd(), args.keyfilename, args.password)
        elif args.encrypt:
            out = encrypt_file(args.encrypt, args.keyfile, args.output)
            log.info("File '%s' successfully encrypted to '%s'", args.encrypt, out)
        elif args.decrypt:
            out = decrypt_file(args.decrypt, args.keyfile, args.output, args.password)
            log.info("File '%s' successfully decrypted to '%s'", args.decrypt, out)
        elif args.sign:
            out = sign_file(args.sign, args.keyfile, args.hashalg, args.output, args.merge, args.password)
            log.info("File '%s' signed to '%s'", args.sign, out)
        elif args.verify:
            if not verify_file(args.verify, args.keyfile, args.hashalg, args.signature):
                log.error("Signature of '%s' is NOT valid", args.verify)
                return 1
            log.info("Signature of '%s' is valid", args.verify)
        else:
            parser.print_help()
    except CryptoError as e:
        log.error("%s: %s", type(e).__name__, e)
        return 1
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
