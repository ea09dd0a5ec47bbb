import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import DecryptionError
from .kdf import derive_key, new_salt, SALT_LENGTH

ALGO_AES_GCM = 'aes-gcm'
NONCE_LENGTH = 12
TAG_LENGTH = 16


def open_aes_gcm(secret_key, material):
    """
    Decrypts material written by `seal_aes_gcm`.

    The material is ``salt | nonce | ciphertext | tag``, without the
    algorithm marker.
    """
    if len(material) < SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH:
        raise DecryptionError('Unable to decrypt: payload is too short')
    salt = material[:SALT_LENGTH]
    nonce = material[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH]
    body = material[SALT_LENGTH + NONCE_LENGTH:]
    ciphertext, tag = body[:-TAG_LENGTH], body[-TAG_LENGTH:]
    try:
        return _open_aes_gcm(derive_key(secret_key, salt), nonce, tag, ciphertext)
    except InvalidTag:
        raise DecryptionError('Unable to decrypt: wrong secret key or corrupt payload')


def seal_aes_gcm(secret_key, plaintext):
    """
    Encrypts `plaintext` with a key derived from `secret_key`.

    You can decrypt with the companion method `open_aes_gcm`.
    """
    salt = new_salt()
    nonce, tag, ciphertext = _seal_aes_gcm(plaintext, derive_key(secret_key, salt))
    return salt + nonce + ciphertext + tag


def _open_aes_gcm(key, nonce, tag, ciphertext):
    decryptor = Cipher(
        algorithms.AES(key),
        modes.GCM(nonce, tag),
    ).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def _seal_aes_gcm(plaintext, key):
    nonce = os.urandom(NONCE_LENGTH)
    encryptor = Cipher(
        algorithms.AES(key),
        modes.GCM(nonce),
    ).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return nonce, encryptor.tag, ciphertext
