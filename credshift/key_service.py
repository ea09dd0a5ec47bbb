import base64
import binascii
import os

import boto3
import botocore.exceptions

from .crypto import EncryptionError

SECRET_KEY_ENV = 'CREDSHIFT_SECRET_KEY'


class StaticKeyService(object):
    """
    Secret key taken from the configuration file or command line, falling
    back to ``CREDSHIFT_SECRET_KEY`` when neither sets one.
    """
    def __init__(self, secret_key=None):
        self.secret_key = secret_key

    def get_secret_key(self):
        secret_key = self.secret_key or os.environ.get(SECRET_KEY_ENV)
        if not secret_key:
            raise EncryptionError(
                'No secret key configured. Set %s or secret_key in the config file' % SECRET_KEY_ENV
            )
        if isinstance(secret_key, str):
            secret_key = secret_key.encode('utf-8')
        return secret_key

    def __repr__(self):
        return 'StaticKeyService()'


class KmsKeyService(object):
    """
    Secret key stored as a KMS ciphertext blob (base64), unwrapped once
    with ``kms:Decrypt``.
    """
    def __init__(self, ciphertext_blob, encryption_context=None, session=None,
                 region_name=None, profile_name=None):
        if session is None:
            session = boto3.Session(profile_name=profile_name)
        self.kms = session.client('kms', region_name=region_name)
        self.ciphertext_blob = ciphertext_blob
        if not encryption_context:
            encryption_context = {}
        self.encryption_context = encryption_context
        self._secret_key = None

    def get_secret_key(self):
        if self._secret_key is None:
            self._secret_key = self.decrypt(self._decode_blob(self.ciphertext_blob))
        return self._secret_key

    def decrypt(self, encoded_key):
        try:
            kms_response = self.kms.decrypt(
                CiphertextBlob=encoded_key,
                EncryptionContext=self.encryption_context
            )
        except botocore.exceptions.ClientError as e:
            if e.response["Error"]["Code"] == "InvalidCiphertextException":
                if not self.encryption_context:
                    msg = ("Could not decrypt the secret key with KMS. The key may "
                           "require that an encryption context be provided to decrypt "
                           "it.")
                else:
                    msg = ("Could not decrypt the secret key with KMS. The encryption "
                           "context provided may not match the one used when the "
                           "key was wrapped.")
            else:
                msg = "Decryption error %s" % e
            raise KmsError(msg)
        return kms_response['Plaintext']

    @staticmethod
    def _decode_blob(ciphertext_blob):
        if not ciphertext_blob:
            raise EncryptionError('No ciphertext_blob configured for the kms key service')
        try:
            return base64.b64decode(ciphertext_blob, validate=True)
        except (binascii.Error, ValueError):
            raise EncryptionError('ciphertext_blob is not valid base64')

    def __repr__(self):
        return 'KmsKeyService(context={0})'.format(self.encryption_context)


class KmsError(EncryptionError):

    def __init__(self, value=""):
        super(KmsError, self).__init__(value)
        self.value = "KMS ERROR: " + value if value != "" else "KMS ERROR"
