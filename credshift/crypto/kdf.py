import secrets
import string

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_LENGTH = 8
KEY_LENGTH = 32
ITERATIONS = 10000

# Alphanumeric so an unmarked payload never starts with the algorithm delimiter
SALT_ALPHABET = (string.ascii_letters + string.digits).encode('ascii')


def new_salt():
    return bytes(secrets.choice(SALT_ALPHABET) for _ in range(SALT_LENGTH))


def derive_key(secret_key, salt):
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=ITERATIONS,
    )
    return kdf.derive(secret_key)
