import datetime

import pytest

from credshift.records import ABSENT, DataSourceRecord, Present
from credshift.util import StoreError

SECRET_KEY = b'SW2YcwTIb9zpOOhoPsMm'
NOW = datetime.datetime(2019, 5, 20, 12, 0, 0)


class FakeStorageService(object):
    """In-memory store that records every write."""

    def __init__(self, records=(), fail_on=None):
        self.records = {record.uid: record for record in records}
        self.updates = []
        self.fail_on = fail_on

    def list_all(self):
        return list(self.records.values())

    def update_one(self, record):
        if record.uid == self.fail_on:
            raise StoreError('disk full')
        self.updates.append(record.uid)
        self.records[record.uid] = record

    def put_one(self, record):
        self.records[record.uid] = record


def make_record(uid, type, password='', basic_auth_password='', secure_data=None):
    if secure_data is None:
        secure_data = ABSENT
    elif not isinstance(secure_data, Present):
        secure_data = Present(secure_data)
    return DataSourceRecord(
        uid=uid, name=type, type=type,
        password=password, basic_auth_password=basic_auth_password,
        secure_data=secure_data, created=NOW, updated=NOW,
    )


@pytest.fixture
def secret_key():
    return SECRET_KEY
