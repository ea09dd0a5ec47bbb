import logging

import boto3
import botocore.exceptions
from boto3.dynamodb.types import Binary

from .records import ABSENT, DataSourceRecord, Present, secure_data_from_column
from .util import StoreError

logger = logging.getLogger(__name__)


class DynamoDbStorageService(object):

    def __init__(self, table_name='data-source', session=None, region_name=None,
                 endpoint_url=None, profile_name=None):
        if session is None:
            session = boto3.Session(profile_name=profile_name)
        self.dynamodb = session.resource(
            'dynamodb', region_name=region_name, endpoint_url=endpoint_url,
        )
        self.table_name = table_name
        self._data_source_table = None

    @property
    def data_source_table(self):
        if not self._data_source_table:
            self._data_source_table = self.dynamodb.Table(self.table_name)
        return self._data_source_table

    def list_all(self):
        """
        Full-table scan, following `LastEvaluatedKey` until exhausted.

        :rtype: List[DataSourceRecord]
        """
        items = []
        response = {'LastEvaluatedKey': None}
        try:
            while 'LastEvaluatedKey' in response:
                params = {}
                if response['LastEvaluatedKey']:
                    params['ExclusiveStartKey'] = response['LastEvaluatedKey']
                response = self.data_source_table.scan(**params)
                items.extend(response['Items'])
        except botocore.exceptions.ClientError as e:
            raise StoreError('Could not scan %s: %s' % (self.table_name, e))
        return [self._unwrap_doc(item) for item in items]

    def update_one(self, record):
        try:
            self.data_source_table.update_item(
                Key={'uid': record.uid},
                UpdateExpression='SET password = :p, basic_auth_password = :b, secure_json_data = :s',
                ConditionExpression='attribute_exists(uid)',
                ExpressionAttributeValues={
                    ':p': record.password,
                    ':b': record.basic_auth_password,
                    ':s': self._wrap_secure_data(record.secure_data),
                },
            )
        except botocore.exceptions.ClientError as e:
            if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                raise StoreError('Data source %s not found in %s' % (record.uid, self.table_name))
            raise StoreError('Could not update data source %s: %s' % (record.uid, e))

    def put_one(self, record):
        item = {
            'uid': record.uid,
            'name': record.name,
            'type': record.type,
            'password': record.password,
            'basic_auth_password': record.basic_auth_password,
            'secure_json_data': self._wrap_secure_data(record.secure_data),
        }
        if record.created is not None:
            item['created'] = record.created.isoformat()
        if record.updated is not None:
            item['updated'] = record.updated.isoformat()
        try:
            self.data_source_table.put_item(Item=item)
        except botocore.exceptions.ClientError as e:
            raise StoreError('Could not insert data source %s: %s' % (record.uid, e))

    @staticmethod
    def _wrap_secure_data(secure_data):
        if not isinstance(secure_data, Present):
            return None
        return {
            key: Binary(ciphertext)
            for key, ciphertext in secure_data.mapping.items()
        }

    @classmethod
    def _unwrap_doc(cls, item):
        return DataSourceRecord(
            uid=item['uid'],
            name=item.get('name', ''),
            type=item.get('type', ''),
            password=item.get('password'),
            basic_auth_password=item.get('basic_auth_password'),
            secure_data=cls._unwrap_secure_data(item),
            created=item.get('created'),
            updated=item.get('updated'),
        )

    @staticmethod
    def _unwrap_secure_data(item):
        raw = item.get('secure_json_data')
        if raw is None:
            return ABSENT
        if not isinstance(raw, dict):
            logger.warning('Unreadable secure_json_data on data source %s, treating as empty', item['uid'])
            return ABSENT
        secure_data = {}
        for k, v in raw.items():
            if isinstance(v, Binary):
                v = v.value
            if not isinstance(v, bytes):
                logger.warning('Unreadable secure_json_data entry %s on data source %s, skipping: expected Binary, got %s',
                               k, item['uid'], type(v).__name__)
                continue
            secure_data[k] = v
        return secure_data_from_column(secure_data)

    def setup(self, read_capacity=1, write_capacity=1):
        try:
            table_names = {t.name for t in self.dynamodb.tables.all()}
            if self.table_name in table_names:
                raise SetupError("Data source table already exists")

            logger.info('creating table "%s"...', self.table_name)
            self.dynamodb.create_table(
                TableName=self.table_name,
                KeySchema=[
                    {
                        "AttributeName": "uid",
                        "KeyType": "HASH",
                    },
                ],
                AttributeDefinitions=[
                    {
                        "AttributeName": "uid",
                        "AttributeType": "S",
                    },
                ],
                ProvisionedThroughput={
                    "ReadCapacityUnits": read_capacity,
                    "WriteCapacityUnits": write_capacity,
                }
            )
            logger.debug('Waiting for table to be created...')
            self.dynamodb.meta.client.get_waiter('table_exists').wait(TableName=self.table_name)
        except botocore.exceptions.ClientError as e:
            raise StoreError('Could not create table %s: %s' % (self.table_name, e))

    def __repr__(self):
        return 'DynamoDbStorageService(table_name=%s)' % self.table_name


class SetupError(StoreError):
    pass
