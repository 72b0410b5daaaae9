# *-* coding: utf-8 *-*
"""CLI for encrypting and decrypting text with an X.509 certificate."""
import logging
import sys

import click

from certcrypt import certificate, envelope, exceptions

logger = logging.getLogger(__name__)

COMMANDS = ('encrypt', 'decrypt')


class Command(click.Command):
    """Command that reports every unsuccessful outcome with exit status 1."""

    def main(self, args=None, prog_name=None, complete_var=None, standalone_mode=True, **extra):
        try:
            rv = super().main(args, prog_name, complete_var, standalone_mode=False, **extra)
        except click.ClickException as exc:
            exc.show()
            sys.exit(1)
        except click.Abort:
            click.echo('Aborted!', err=True)
            sys.exit(1)
        sys.exit(rv or 0)


def show_help(ctx, param, value):
    if not value or ctx.resilient_parsing:
        return
    click.echo(ctx.get_help())
    ctx.exit(1)


def configure_logging(verbose, debug):
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')


def read_text(text, file):
    """Resolve the input from exactly one of --text and --file."""
    has_text = text is not None and text.strip() != ''
    has_file = file is not None and file.strip() != ''
    if has_text and has_file:
        raise exceptions.ArgumentError('You cannot specify both the --file and --text options.')
    if not has_text and not has_file:
        raise exceptions.ArgumentError('You must specify either the --file or --text option.')
    if has_text:
        return text
    try:
        with open(file, 'rt', encoding='utf-8-sig', newline='') as fp:
            return fp.read()
    except UnicodeDecodeError as exc:
        raise exceptions.ArgumentError('%s is not UTF-8 text' % file) from exc
    except OSError as exc:
        raise exceptions.ArgumentError('cannot read %s: %s' % (file, exc.strerror or exc)) from exc


def run(command, text, file, cert_path, password, key_path, armor, ignore_key_usage):
    data = read_text(text, file)
    cert = certificate.load(cert_path, password, key_path)
    if command == 'encrypt':
        return envelope.encrypt(data, cert, armor=armor, check_key_usage=not ignore_key_usage)
    return envelope.decrypt(data.strip(), cert)


@click.command(cls=Command, context_settings={'help_option_names': []})
@click.option(
    '-h', '--help',
    is_flag=True,
    expose_value=False,
    is_eager=True,
    callback=show_help,
    help='Show this message and exit.',
)
@click.option(
    '-c', '--certificate', 'cert_path',
    required=True,
    envvar='CERTCRYPT_CERTIFICATE',
    type=click.Path(exists=True, dir_okay=False),
    help='Certificate file: PEM, DER or PKCS#12.',
)
@click.option(
    '-p', '--password',
    default=None,
    envvar='CERTCRYPT_PASSWORD',
    help='Password protecting the PKCS#12 file or private key.',
)
@click.option(
    '-k', '--key', 'key_path',
    default=None,
    envvar='CERTCRYPT_KEY',
    type=click.Path(exists=True, dir_okay=False),
    help='Private key file, when it is not stored with the certificate.',
)
@click.option('-t', '--text', default=None, help='Text to encrypt or decrypt.')
@click.option(
    '-f', '--file',
    default=None,
    help='File holding the text to encrypt or decrypt.',
)
@click.option('--armor', is_flag=True, help='Write the encrypted text as a PEM block.')
@click.option(
    '--ignore-key-usage',
    is_flag=True,
    help='Encrypt even when the certificate key usage does not allow key encipherment.',
)
@click.option('--verbose', is_flag=True, help='Print more information.')
@click.option('--debug', is_flag=True, help='Print debug information.')
@click.argument('command', type=click.Choice(COMMANDS, case_sensitive=False))
def cli(command, cert_path, password, key_path, text, file, armor, ignore_key_usage, verbose, debug):
    """Encrypt or decrypt text with an X.509 certificate.

    COMMAND is either encrypt or decrypt.  The result is written to
    standard output.
    """
    configure_logging(verbose, debug)
    command = command.lower()
    try:
        result = run(command, text, file, cert_path, password, key_path, armor, ignore_key_usage)
    except exceptions.CertCryptError as exc:
        logger.debug('%s failed', command, exc_info=True)
        click.echo('!! %s: %s' % (exc.kind, exc), err=True)
        sys.exit(1)
    click.echo(result)


def main():
    cli(prog_name='certcrypt')


if __name__ == '__main__':
    main()
