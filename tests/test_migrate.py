import pytest

from credshift.crypto import EncryptionError, decrypt, encrypt
from credshift.migrate import MigrationError, migrate, migrate_record, verify
from credshift.records import ABSENT, Present

from conftest import FakeStorageService, make_record


def decrypt_all(record, secret_key):
    return {
        key: decrypt(ciphertext, secret_key).decode('utf-8')
        for key, ciphertext in record.secure_data.mapping.items()
    }


@pytest.fixture
def store(secret_key):
    return FakeStorageService([
        make_record('influx', 'influxdb', password='foobar'),
        make_record('graphite', 'graphite', basic_auth_password='foobar', secure_data={}),
        make_record('prom', 'prometheus', secure_data={}),
        make_record('elastic', 'elasticsearch', password='pwd',
                    secure_data={'key': encrypt(b'value', secret_key)}),
    ])


def test_password_migration(store, secret_key):
    migrate(store, secret_key)

    assert len(store.records) == 4
    influx = store.records['influx']
    assert influx.password == ''
    assert decrypt_all(influx, secret_key) == {'password': 'foobar'}

    graphite = store.records['graphite']
    assert graphite.basic_auth_password == ''
    assert decrypt_all(graphite, secret_key) == {'basicAuthPassword': 'foobar'}

    prom = store.records['prom']
    assert prom.secure_data == Present({})

    elastic = store.records['elastic']
    assert elastic.password == ''
    assert decrypt_all(elastic, secret_key) == {'password': 'pwd', 'key': 'value'}


def test_migration_result(store, secret_key):
    result = migrate(store, secret_key)
    assert result.records_scanned == 4
    assert result.records_updated == 3
    assert result.passwords_encrypted == 2
    assert result.basic_auth_passwords_encrypted == 1
    assert sorted(store.updates) == ['elastic', 'graphite', 'influx']


def test_migration_is_idempotent(store, secret_key):
    migrate(store, secret_key)
    after_first_run = dict(store.records)

    result = migrate(store, secret_key)

    assert store.records == after_first_run
    assert result.records_updated == 0
    assert result.passwords_encrypted == 0


def test_no_plaintext_left(store, secret_key):
    migrate(store, secret_key)
    for record in store.list_all():
        assert record.password == ''
        assert record.basic_auth_password == ''
        assert record.plaintext_fields() == []


def test_existing_entries_are_kept_byte_for_byte(secret_key):
    other = encrypt(b'token', secret_key)
    store = FakeStorageService([
        make_record('loki', 'loki', password='pwd', secure_data={'httpHeaderValue1': other}),
    ])
    migrate(store, secret_key)
    assert store.records['loki'].secure_data.mapping['httpHeaderValue1'] is other


def test_plaintext_overwrites_stale_entry(secret_key):
    store = FakeStorageService([
        make_record('influx', 'influxdb', password='new',
                    secure_data={'password': encrypt(b'old', secret_key)}),
    ])
    migrate(store, secret_key)
    assert decrypt_all(store.records['influx'], secret_key) == {'password': 'new'}


def test_absent_secure_data_is_normalized(secret_key):
    clean = make_record('prom', 'prometheus')
    store = FakeStorageService([clean])

    result = migrate(store, secret_key)

    migrated = store.records['prom']
    assert migrated.secure_data == Present({})
    assert migrated._replace(secure_data=ABSENT) == clean
    assert result.records_updated == 1
    assert result.passwords_encrypted == 0


def test_clean_record_is_not_rewritten(secret_key):
    store = FakeStorageService([make_record('prom', 'prometheus', secure_data={})])
    migrate(store, secret_key)
    assert store.updates == []


def test_empty_store(secret_key):
    result = migrate(FakeStorageService(), secret_key)
    assert tuple(result) == (0, 0, 0, 0)


def test_empty_store_does_not_need_a_key():
    assert migrate(FakeStorageService(), None).records_scanned == 0


@pytest.mark.parametrize('key', [None, b''])
def test_bad_key_aborts_before_any_write(store, key):
    with pytest.raises(EncryptionError):
        migrate(store, key)
    assert store.updates == []


def test_store_failure_stops_the_run(secret_key):
    store = FakeStorageService([
        make_record('a', 'influxdb', password='one'),
        make_record('b', 'influxdb', password='two'),
        make_record('c', 'influxdb', password='three'),
    ], fail_on='b')

    with pytest.raises(MigrationError) as excinfo:
        migrate(store, secret_key)

    assert excinfo.value.uid == 'b'
    assert 'disk full' in str(excinfo.value)
    assert store.updates == ['a']
    assert store.records['c'].password == 'three'


def test_rerun_after_failure_finishes_the_job(secret_key):
    store = FakeStorageService([
        make_record('a', 'influxdb', password='one'),
        make_record('b', 'influxdb', password='two'),
    ], fail_on='b')
    with pytest.raises(MigrationError):
        migrate(store, secret_key)

    store.fail_on = None
    result = migrate(store, secret_key)

    assert result.records_updated == 1
    assert decrypt_all(store.records['a'], secret_key) == {'password': 'one'}
    assert decrypt_all(store.records['b'], secret_key) == {'password': 'two'}


def test_dry_run_writes_nothing(store, secret_key):
    result = migrate(store, secret_key, dry_run=True)
    assert result.records_updated == 3
    assert store.updates == []
    assert store.records['influx'].password == 'foobar'


class TestMigrateRecord(object):

    def test_returns_a_new_record(self, secret_key):
        record = make_record('influx', 'influxdb', password='foobar', basic_auth_password='basic')

        new_record, moved = migrate_record(record, secret_key)

        assert moved == ['password', 'basicAuthPassword']
        assert record.password == 'foobar'
        assert record.secure_data is ABSENT
        assert new_record.password == ''
        assert new_record.basic_auth_password == ''
        assert new_record.created == record.created
        assert decrypt_all(new_record, secret_key) == {
            'password': 'foobar', 'basicAuthPassword': 'basic',
        }

    def test_does_not_share_the_input_mapping(self, secret_key):
        mapping = {}
        record = make_record('influx', 'influxdb', password='foobar', secure_data=mapping)
        migrate_record(record, secret_key)
        assert mapping == {}

    def test_legacy_algorithm(self, secret_key):
        record = make_record('influx', 'influxdb', password='foobar')
        new_record, _ = migrate_record(record, secret_key, algorithm='aes-cfb')
        assert not new_record.secure_data.mapping['password'].startswith(b'*')
        assert decrypt_all(new_record, secret_key) == {'password': 'foobar'}


class TestVerify(object):

    def test_after_migration(self, store, secret_key):
        migrate(store, secret_key)
        results = {r.uid: r for r in verify(store, secret_key)}

        assert results['elastic'].decrypted_keys == ['key', 'password']
        assert results['prom'].decrypted_keys == []
        for result in results.values():
            assert result.plaintext_fields == []
            assert result.undecryptable_keys == []

    def test_reports_problems(self, secret_key):
        store = FakeStorageService([
            make_record('influx', 'influxdb', basic_auth_password='foobar', secure_data={
                'password': encrypt(b'pwd', b'some other key'),
                'key': encrypt(b'value', secret_key),
            }),
        ])
        result, = verify(store, secret_key)
        assert result.plaintext_fields == ['basic_auth_password']
        assert result.decrypted_keys == ['key']
        assert result.undecryptable_keys == ['password']
