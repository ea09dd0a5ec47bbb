import logging
from collections import namedtuple

from .crypto import DEFAULT_ALGORITHM, DecryptionError, check_secret_key, decrypt, encrypt
from .records import ABSENT, Present, effective_secure_data
from .util import StoreError, to_camel_case

logger = logging.getLogger(__name__)

# Plaintext columns moved into secure data, keyed by their camel-case name
SECRET_COLUMNS = ('password', 'basic_auth_password')


class MigrationError(StoreError):

    def __init__(self, uid, cause):
        super(MigrationError, self).__init__(
            'Failed to update data source %s: %s' % (uid, cause)
        )
        self.uid = uid
        self.cause = cause


MigrationResult = namedtuple('MigrationResult', [
    'records_scanned',
    'records_updated',
    'passwords_encrypted',
    'basic_auth_passwords_encrypted',
])

VerificationResult = namedtuple('VerificationResult', [
    'uid', 'name', 'plaintext_fields', 'decrypted_keys', 'undecryptable_keys',
])


def migrate_record(record, secret_key, algorithm=DEFAULT_ALGORITHM):
    """
    Move the plaintext secrets of `record` into its secure data.

    Returns the new record and the secure-data keys that were written.
    Entries already in secure data are kept unless a plaintext column
    overwrites the key of the same name.

    :type record: credshift.records.DataSourceRecord
    :type secret_key: bytes
    :rtype: Tuple[DataSourceRecord, List[text]]
    """
    secure_data = effective_secure_data(record)
    changes = {}
    moved = []
    for column in SECRET_COLUMNS:
        plaintext = getattr(record, column)
        if not plaintext:
            continue
        key = to_camel_case(column)
        secure_data[key] = encrypt(plaintext.encode('utf-8'), secret_key, algorithm)
        changes[column] = ''
        moved.append(key)

    return record._replace(secure_data=Present(secure_data), **changes), moved


def migrate(storage_service, secret_key, algorithm=DEFAULT_ALGORITHM, dry_run=False):
    """
    Encrypt the plaintext passwords of every data source.

    Records already in the target state are not rewritten. The run stops
    at the first failed write; records updated before it stay updated,
    so the whole run can simply be repeated.

    :rtype: MigrationResult
    """
    records = storage_service.list_all()
    if not records:
        logger.info('No data sources found')
        return MigrationResult(0, 0, 0, 0)

    check_secret_key(secret_key)

    updated = passwords = basic_auth_passwords = 0
    for record in records:
        new_record, moved = migrate_record(record, secret_key, algorithm)
        if not moved and record.secure_data is not ABSENT:
            continue

        if moved:
            logger.info('Encrypting %s for data source %s', ', '.join(moved), record.uid)
        else:
            logger.debug('Normalizing absent secure data for data source %s', record.uid)

        if not dry_run:
            try:
                storage_service.update_one(new_record)
            except StoreError as e:
                raise MigrationError(record.uid, e) from e

        updated += 1
        passwords += 'password' in moved
        basic_auth_passwords += 'basicAuthPassword' in moved

    logger.debug('Scanned %d data sources, updated %d', len(records), updated)
    return MigrationResult(len(records), updated, passwords, basic_auth_passwords)


def verify_record(record, secret_key):
    decrypted, undecryptable = [], []
    for key, ciphertext in sorted(effective_secure_data(record).items()):
        try:
            decrypt(ciphertext, secret_key)
        except DecryptionError as e:
            logger.warning('Data source %s: cannot decrypt %s (%s)', record.uid, key, e)
            undecryptable.append(key)
        else:
            decrypted.append(key)
    return VerificationResult(
        record.uid, record.name, record.plaintext_fields(), decrypted, undecryptable,
    )


def verify(storage_service, secret_key):
    """
    Check every data source: no plaintext left, every secure entry
    decrypts with `secret_key`. Decrypted values are discarded.

    :rtype: List[VerificationResult]
    """
    return [
        verify_record(record, secret_key)
        for record in storage_service.list_all()
    ]
