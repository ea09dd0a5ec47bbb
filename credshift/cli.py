import functools
import logging
from importlib.metadata import entry_points

import click

from credshift import get_session
from credshift.crypto import ALGORITHMS, EncryptionError
from credshift.util import StoreError, detect_format, set_stream_logger, write_report

logger = logging.getLogger(__name__)

CHECK = click.style('✔', fg='green')
CROSS = click.style('✘', fg='red')

PROVISIONING_WARNING = (
    'Warning: Data source provisioning files need to be changed by hand, '
    'otherwise provisioning will write the plaintext passwords back.'
)


def fail_cleanly(func):
    """
    Report fatal errors on stderr and exit non-zero instead of printing
    a traceback.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (EncryptionError, StoreError, RuntimeError) as e:
            logger.debug('Aborting', exc_info=True)
            raise click.ClickException(str(e))
    return wrapper


@click.group()
@click.option('--config', '-c',
              type=click.Path(resolve_path=True),
              default=None)
@click.option('--database-url', '-d', default=None,
              help="SQLAlchemy url of the database holding the "
                   "data source table. Implies the sql storage service.")
@click.option('--table-name', '-t', default=None,
              help="table holding the data sources")
@click.option('--secret-key', default=None, envvar='CREDSHIFT_SECRET_KEY',
              help="the secret key used to encrypt secure data. "
                   "Defaults to $CREDSHIFT_SECRET_KEY.")
@click.option('--algorithm', type=click.Choice(ALGORITHMS), default=None,
              help="cipher used for newly encrypted values")
@click.pass_context
def main(ctx, config, database_url, table_name, secret_key, algorithm):
    ctx.obj = get_session(
        config=config,
        database_url=database_url,
        table_name=table_name,
        secret_key=secret_key,
        algorithm=algorithm,
    )
    set_stream_logger(
        level=ctx.obj.log_level
    )


@main.command('migrate')
@click.option('--dry-run', is_flag=True, default=False,
              help="Report what would be encrypted without writing.")
@click.pass_context
@fail_cleanly
def cmd_migrate(ctx, dry_run):
    """
    Move plaintext data source passwords into encrypted secure data.
    """
    result = ctx.obj.migrate(dry_run=dry_run)
    verb = 'Would encrypt' if dry_run else 'Encrypted'

    click.echo()
    if result.passwords_encrypted:
        click.echo('{0} {1} password field for {2} data sources'.format(
            CHECK, verb, result.passwords_encrypted))
    if result.basic_auth_passwords_encrypted:
        click.echo('{0} {1} basic auth password field for {2} data sources'.format(
            CHECK, verb, result.basic_auth_passwords_encrypted))
    if not result.passwords_encrypted and not result.basic_auth_passwords_encrypted:
        click.echo('{0} All data source secrets are already encrypted'.format(CHECK))
    click.echo('{0} {1} of {2} data sources {3}'.format(
        CHECK, result.records_updated, result.records_scanned,
        'need updating' if dry_run else 'updated'))
    click.echo()
    if result.passwords_encrypted or result.basic_auth_passwords_encrypted:
        click.secho(PROVISIONING_WARNING, fg='yellow', err=True)


@main.command('verify')
@click.argument('destination', type=click.File('w'), required=False, default='-')
@click.option('-f', '--format', 'fmt', type=click.Choice(['text', 'json', 'yaml']), default=None)
@click.pass_context
@fail_cleanly
def cmd_verify(ctx, destination, fmt=None):
    """
    Check that no plaintext passwords remain and all secure data decrypts.
    """
    results = ctx.obj.verify()
    if not fmt:
        fmt = detect_format(destination, default_format='text')

    if fmt == 'text':
        for result in results:
            problems = ['plaintext %s' % f for f in result.plaintext_fields]
            problems += ['cannot decrypt %s' % k for k in result.undecryptable_keys]
            click.echo('{0} {1} ({2}) {3}'.format(
                CROSS if problems else CHECK,
                result.uid, result.name,
                '; '.join(problems) or ', '.join(result.decrypted_keys) or '-',
            ), file=destination)
    else:
        write_report({
            result.uid: {
                'name': result.name,
                'plaintext_fields': result.plaintext_fields,
                'decrypted_keys': result.decrypted_keys,
                'undecryptable_keys': result.undecryptable_keys,
            }
            for result in results
        }, destination, fmt)

    failed = [r.uid for r in results if r.plaintext_fields or r.undecryptable_keys]
    if failed:
        raise click.ClickException(
            '{0} of {1} data sources failed verification'.format(len(failed), len(results))
        )


@main.command('list')
@click.pass_context
@fail_cleanly
def cmd_list(ctx):
    """
    List data sources and the plaintext fields they still hold.
    """
    records = ctx.obj.list_all()
    if not records:
        return

    max_len = max(len(record.uid) for record in records)
    for record in sorted(records, key=lambda r: r.uid):
        click.echo("{0:{l}} -- {1} -- {2} -- plaintext: {3}".format(
                   record.uid, record.type, record.name,
                   ', '.join(record.plaintext_fields()) or 'none', l=max_len))


@main.command('setup')
@click.pass_context
@fail_cleanly
def cmd_setup(ctx):
    """
    Create the data source table in the configured store
    """
    ctx.obj.storage_service.setup()


# Load any extra CLI's
for ep in entry_points(group='credshift.cli'):
    try:
        ep.load()
    except ImportError:
        pass
