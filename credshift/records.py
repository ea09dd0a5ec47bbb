from collections import namedtuple


class _Absent(object):
    """
    Secure data that was never written (NULL column, missing attribute)
    or could not be read back.
    """
    def __bool__(self):
        return False

    def __repr__(self):
        return 'ABSENT'


ABSENT = _Absent()


class Present(namedtuple('Present', ['mapping'])):
    """
    Secure data read from the store: field name -> ciphertext.
    """
    __slots__ = ()


class DataSourceRecord(namedtuple('DataSourceRecord', [
    'uid', 'name', 'type', 'password', 'basic_auth_password',
    'secure_data', 'created', 'updated',
])):
    __slots__ = ()

    def __new__(cls, uid, name='', type='', password='', basic_auth_password='',
                secure_data=ABSENT, created=None, updated=None):
        return super(DataSourceRecord, cls).__new__(
            cls, uid, name, type,
            password or '', basic_auth_password or '',
            secure_data, created, updated,
        )

    def plaintext_fields(self):
        """
        Names of the legacy plaintext columns that still hold a value.

        :rtype: List[text]
        """
        return [
            field for field in ('password', 'basic_auth_password')
            if getattr(self, field)
        ]


def secure_data_from_column(value):
    """
    Wrap a raw mapping read from the store.

    ``None`` becomes `ABSENT`, anything else must be a mapping of
    field name to ciphertext bytes.
    """
    if value is None:
        return ABSENT
    return Present(dict(value))


def effective_secure_data(record):
    """
    The mapping migration works on: a copy of the stored entries, or an
    empty mapping when secure data is absent.

    :rtype: Dict[text, bytes]
    """
    if isinstance(record.secure_data, Present):
        return dict(record.secure_data.mapping)
    return {}
