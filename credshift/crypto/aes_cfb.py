import os

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import DecryptionError
from .kdf import derive_key, new_salt, SALT_LENGTH

ALGO_AES_CFB = 'aes-cfb'
IV_LENGTH = 16


def open_aes_cfb(secret_key, material):
    """
    Decrypts material written by `seal_aes_cfb`.

    CFB carries no authentication tag: a wrong key produces garbage
    rather than an error.
    """
    if len(material) < SALT_LENGTH + IV_LENGTH:
        raise DecryptionError('Unable to decrypt: payload is too short')
    salt = material[:SALT_LENGTH]
    iv = material[SALT_LENGTH:SALT_LENGTH + IV_LENGTH]
    ciphertext = material[SALT_LENGTH + IV_LENGTH:]
    decryptor = Cipher(
        algorithms.AES(derive_key(secret_key, salt)),
        modes.CFB(iv),
    ).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def seal_aes_cfb(secret_key, plaintext):
    """
    :deprecated: Please use `seal_aes_gcm` instead.

    Layout is ``salt | iv | ciphertext``, readable by older tooling.
    """
    salt = new_salt()
    iv = os.urandom(IV_LENGTH)
    encryptor = Cipher(
        algorithms.AES(derive_key(secret_key, salt)),
        modes.CFB(iv),
    ).encryptor()
    return salt + iv + encryptor.update(plaintext) + encryptor.finalize()
