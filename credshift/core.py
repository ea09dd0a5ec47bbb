import logging
import os
from importlib.metadata import entry_points

from .crypto import DEFAULT_ALGORITHM
from .migrate import migrate, verify
from .util import parse_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = '/etc/credshift.cfg'


class Credshift(object):
    def __init__(self, storage_service_loader, key_service_loader,
                 algorithm, log_level):
        self.storage_service_loader = storage_service_loader
        self.key_service_loader = key_service_loader
        self.algorithm = algorithm
        self.log_level = log_level

    @property
    def key_service(self):
        return self.key_service_loader.get()

    @property
    def storage_service(self):
        return self.storage_service_loader.get()

    def list_all(self):
        """
        :rtype: List[credshift.records.DataSourceRecord]
        """
        return self.storage_service.list_all()

    def migrate(self, dry_run=False):
        """
        Encrypt every plaintext data source password.

        :rtype: credshift.migrate.MigrationResult
        """
        return migrate(
            self.storage_service,
            self.key_service.get_secret_key(),
            algorithm=self.algorithm,
            dry_run=dry_run,
        )

    def verify(self):
        """
        :rtype: List[credshift.migrate.VerificationResult]
        """
        return verify(self.storage_service, self.key_service.get_secret_key())


def get_session(config=None, database_url=None, table_name=None,
                secret_key=None, algorithm=None):
    """Creates a new credshift session."""
    if config is None:
        config = os.environ.get('CREDSHIFT_CONFIG', DEFAULT_CONFIG)

    main_section = {}
    sections = {}
    if config and os.path.exists(config):
        with open(config, 'r') as config_fp:
            sections = parse_config(config_fp)
            main_section = sections.get('credshift', {})

    if secret_key:
        # Using --secret-key ignores the key service configuration.
        key_service_name = 'static'
        key_service_config = {'secret_key': secret_key}
    else:
        key_service_name = main_section.get('key_service', 'static')
        key_service_config = sections.get('credshift:key_service:%s' % key_service_name, {})

    if database_url:
        # Using --database-url/-d forces the sql storage service.
        storage_service_name = 'sql'
        storage_service_config = {'url': database_url}
    else:
        storage_service_name = main_section.get('storage_service', 'sql')
        storage_service_config = sections.get('credshift:storage_service:%s' % storage_service_name, {})
    if table_name:
        storage_service_config['table_name'] = table_name

    if not algorithm:
        algorithm = main_section.get('algorithm', DEFAULT_ALGORITHM)

    return Credshift(
        EntryPointLoader('credshift.storage_service', storage_service_name, **storage_service_config),
        EntryPointLoader('credshift.key_service', key_service_name, **key_service_config),
        algorithm,
        log_level=main_section.get('log_level', 'INFO').upper(),
    )


class EntryPointLoader(object):
    def __init__(self, group, name, *args, **kwargs):
        self.group = group
        self.name = name
        self.args = args
        self.kwargs = kwargs
        self._obj = None

    def get(self):
        if not self._obj:
            cls = self.load_entry_point(self.group, self.name)
            self._obj = cls(*self.args, **self.kwargs)
            self.args, self.kwargs = None, None
        return self._obj

    @staticmethod
    def load_entry_point(group, name):
        for entry_point in entry_points(group=group, name=name):
            return entry_point.load()
        raise RuntimeError('Not found EntryPoint(group={0},name={1})'.format(group, name))

    def __repr__(self):
        return 'EntryPointLoader(group={0},name={1})'.format(self.group, self.name)
