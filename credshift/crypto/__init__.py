import base64

from .aes_cfb import open_aes_cfb, seal_aes_cfb, ALGO_AES_CFB
from .aes_gcm import open_aes_gcm, seal_aes_gcm, ALGO_AES_GCM
from .errors import DecryptionError, EncryptionError

DEFAULT_ALGORITHM = ALGO_AES_GCM
ALGORITHMS = (ALGO_AES_GCM, ALGO_AES_CFB)
ALGORITHM_DELIMITER = b'*'


def check_secret_key(secret_key):
    """
    Raise `EncryptionError` unless `secret_key` is usable key material.

    :type secret_key: bytes
    """
    if secret_key is None:
        raise EncryptionError('No secret key configured')
    if not isinstance(secret_key, bytes):
        raise EncryptionError('Secret key must be bytes, got %s' % type(secret_key).__name__)
    if not secret_key:
        raise EncryptionError('Secret key is empty')


def encrypt(plaintext, secret_key, algorithm=DEFAULT_ALGORITHM):
    """
    Encrypt `plaintext` under `secret_key`.

    Authenticated payloads are prefixed with ``*<base64 algorithm>*`` so
    `decrypt` can tell them apart from legacy CFB payloads, which carry no
    marker.

    :type plaintext: bytes
    :type secret_key: bytes
    :rtype: bytes
    """
    check_secret_key(secret_key)
    if isinstance(plaintext, str):
        plaintext = plaintext.encode('utf-8')

    if not algorithm:
        algorithm = DEFAULT_ALGORITHM

    if algorithm == ALGO_AES_GCM:
        return _algorithm_marker(algorithm) + seal_aes_gcm(secret_key, plaintext)
    if algorithm == ALGO_AES_CFB:
        return seal_aes_cfb(secret_key, plaintext)
    raise EncryptionError('Unsupported algo: %s' % algorithm)


def decrypt(payload, secret_key):
    """
    Decrypt a payload written by `encrypt`, or by older tooling using the
    unmarked CFB layout.

    :type payload: bytes
    :type secret_key: bytes
    :rtype: bytes
    """
    if not secret_key or not isinstance(secret_key, bytes):
        raise DecryptionError('No usable secret key')
    if not isinstance(payload, bytes):
        raise DecryptionError('Payload must be bytes, got %s' % type(payload).__name__)

    algorithm, material = _split_algorithm(payload)
    if algorithm == ALGO_AES_GCM:
        return open_aes_gcm(secret_key, material)
    if algorithm == ALGO_AES_CFB:
        return open_aes_cfb(secret_key, material)
    raise DecryptionError('Unsupported algo: %s' % algorithm)


def _algorithm_marker(algorithm):
    return (
        ALGORITHM_DELIMITER +
        base64.b64encode(algorithm.encode('ascii')) +
        ALGORITHM_DELIMITER
    )


def _split_algorithm(payload):
    if not payload.startswith(ALGORITHM_DELIMITER):
        return ALGO_AES_CFB, payload

    end = payload.find(ALGORITHM_DELIMITER, 1)
    if end == -1:
        raise DecryptionError('Unable to decrypt: unterminated algorithm marker')
    try:
        algorithm = base64.b64decode(payload[1:end], validate=True).decode('ascii')
    except (ValueError, UnicodeDecodeError):
        raise DecryptionError('Unable to decrypt: malformed algorithm marker')
    return algorithm, payload[end + 1:]
