import base64
import binascii
import json
import logging

from sqlalchemy import (
    Column, DateTime, Integer, MetaData, String, Table, Text, create_engine, select,
)
from sqlalchemy.exc import SQLAlchemyError

from .records import ABSENT, DataSourceRecord, Present, secure_data_from_column
from .util import StoreError

logger = logging.getLogger(__name__)


def data_source_table(table_name, metadata):
    return Table(
        table_name, metadata,
        Column('id', Integer, primary_key=True, autoincrement=True),
        Column('uid', String(40), nullable=False, unique=True),
        Column('name', String(190), nullable=False),
        Column('type', String(255), nullable=False),
        Column('password', String(255), nullable=True),
        Column('basic_auth_password', String(255), nullable=True),
        Column('secure_json_data', Text, nullable=True),
        Column('created', DateTime, nullable=False),
        Column('updated', DateTime, nullable=False),
    )


def dump_secure_json_data(secure_data):
    """
    Serialize secure data as a JSON object of base64 ciphertext.

    `ABSENT` is stored as NULL.
    """
    if not isinstance(secure_data, Present):
        return None
    return json.dumps({
        key: base64.b64encode(ciphertext).decode('ascii')
        for key, ciphertext in secure_data.mapping.items()
    }, sort_keys=True)


def load_secure_json_data(raw, uid=None):
    """
    Parse a ``secure_json_data`` column.

    NULL and empty columns are absent, and so is a column that does not
    parse as a JSON object. Inside a readable object, entries that are
    not base64 strings are logged and skipped; the others are kept.
    """
    if raw is None or raw == '':
        return ABSENT
    try:
        parsed = json.loads(raw)
        if not isinstance(parsed, dict):
            raise ValueError('expected a JSON object, got %s' % type(parsed).__name__)
    except ValueError as e:
        logger.warning('Unreadable secure_json_data on data source %s, treating as empty: %s', uid, e)
        return ABSENT

    secure_data = {}
    for key, value in parsed.items():
        try:
            secure_data[key] = base64.b64decode(value, validate=True)
        except (ValueError, TypeError, binascii.Error) as e:
            logger.warning('Unreadable secure_json_data entry %s on data source %s, skipping: %s', key, uid, e)
    return secure_data_from_column(secure_data)


class SqlStorageService(object):

    def __init__(self, url=None, table_name='data_source', engine=None):
        if engine is None:
            if not url:
                raise StoreError('No database url configured')
            engine = create_engine(url)
        self.engine = engine
        self.table_name = table_name
        self.metadata = MetaData()
        self.table = data_source_table(table_name, self.metadata)

    def list_all(self):
        """
        :rtype: List[DataSourceRecord]
        """
        query = select(
            self.table.c.uid,
            self.table.c.name,
            self.table.c.type,
            self.table.c.password,
            self.table.c.basic_auth_password,
            self.table.c.secure_json_data,
            self.table.c.created,
            self.table.c.updated,
        ).order_by(self.table.c.id)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query).fetchall()
        except SQLAlchemyError as e:
            raise StoreError('Could not read data sources from %s: %s' % (self.table_name, e))
        return [self._unwrap_row(row) for row in rows]

    def update_one(self, record):
        """
        Write back the secret columns of `record` in a transaction of
        its own.
        """
        statement = self.table.update().where(
            self.table.c.uid == record.uid
        ).values(
            password=record.password,
            basic_auth_password=record.basic_auth_password,
            secure_json_data=dump_secure_json_data(record.secure_data),
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(statement)
        except SQLAlchemyError as e:
            raise StoreError('Could not update data source %s: %s' % (record.uid, e))
        if result.rowcount == 0:
            raise StoreError('Data source %s not found in %s' % (record.uid, self.table_name))

    def put_one(self, record):
        statement = self.table.insert().values(
            uid=record.uid,
            name=record.name,
            type=record.type,
            password=record.password,
            basic_auth_password=record.basic_auth_password,
            secure_json_data=dump_secure_json_data(record.secure_data),
            created=record.created,
            updated=record.updated,
        )
        try:
            with self.engine.begin() as conn:
                conn.execute(statement)
        except SQLAlchemyError as e:
            raise StoreError('Could not insert data source %s: %s' % (record.uid, e))

    @staticmethod
    def _unwrap_row(row):
        return DataSourceRecord(
            uid=row.uid,
            name=row.name,
            type=row.type,
            password=row.password,
            basic_auth_password=row.basic_auth_password,
            secure_data=load_secure_json_data(row.secure_json_data, uid=row.uid),
            created=row.created,
            updated=row.updated,
        )

    def setup(self):
        logger.info('creating table "%s"...', self.table_name)
        try:
            self.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError('Could not create table %s: %s' % (self.table_name, e))

    def __repr__(self):
        return 'SqlStorageService(url=%s, table_name=%s)' % (
            self.engine.url, self.table_name,
        )
