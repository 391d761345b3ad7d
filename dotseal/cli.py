import functools
import logging
import os.path
import pathlib
import typing

import click

from . import __doc__, __version__, cipher
from .secrets import SecretManager, decrypted_path, encrypted_path
from .utils import DotsealException, ignored_by_git

log = logging.getLogger(__name__)

PREVIEW_ENTRIES = 10
PREVIEW_LENGTH = 20


@functools.lru_cache()
def rel(path: pathlib.Path) -> str:
    """
    Convert a path to a relative Path.

    Returns a string as these should only be used for presentation.
    """
    return os.path.relpath(path.as_posix(), pathlib.Path.cwd().as_posix())


def enc(path: pathlib.Path) -> str:
    """Style a path to an encrypted file."""
    return click.style(rel(path), fg='green')


def dec(path: pathlib.Path) -> str:
    """Style a path to a plaintext file."""
    return click.style(rel(path), fg='red')


class PathType(click.Path):
    def convert(self, value, param, ctx):
        return pathlib.Path(super().convert(value, param, ctx))


input_argument = click.argument(
    'path',
    type=PathType(exists=True, dir_okay=False),
    required=True)

output_option = click.option(
    '-o', '--output',
    type=PathType(dir_okay=False),
    default=None,
    help="Defaults to a name derived from the input file.")

force_option = click.option(
    '-f', '--force',
    default=False,
    is_flag=True,
    help="Overwrite an existing output file without asking.")

password_option = click.option(
    '-p', '--password',
    envvar='DOTSEAL_PASSWORD',
    default=None,
    type=click.STRING,
    help="Prompted for when not given.")


def confirm_overwrite(path: pathlib.Path, force: bool) -> None:
    if path.exists() and not force:
        click.confirm(
            f"Output file {rel(path)} already exists, overwrite it?",
            abort=True)


def prompt_password(prompt: str, confirm: bool = False) -> str:
    return click.prompt(prompt, hide_input=True, confirmation_prompt=confirm)


@click.group(help=__doc__)
@click.option(
    '-d', '--debug', 'debug',
    default=False,
    is_flag=True,
    help="Enable debug logging.")
@click.option(
    '--backup/--no-backup',
    default=False,
    help="Copy an existing output file aside before replacing it.")
@click.pass_context
def main(ctx, debug: bool, backup: bool):
    logging.basicConfig(level=(logging.DEBUG if debug else logging.WARNING))
    ctx.obj = SecretManager(backup=backup)


@main.command()
def version():
    """Show the application version."""
    click.echo(f"dotseal {__version__}")
    click.echo(
        f"AES-256-CBC with PBKDF2-HMAC-SHA256 "
        f"({cipher.ITERATIONS:,} iterations)")


@main.command()
@input_argument
@output_option
@force_option
@password_option
@click.pass_obj
def encrypt(
        sm: SecretManager,
        path: pathlib.Path,
        output: typing.Optional[pathlib.Path],
        force: bool,
        password: typing.Optional[str]):
    """
    Encrypt the values of a .env file.

    Writes '{file}.enc' unless --output is given. Values that are already
    encrypted are left alone.
    """
    output = output or encrypted_path(path)
    confirm_overwrite(output, force)

    if password is None:
        password = prompt_password("Encryption password", confirm=True)

    result = sm.encrypt_file(path, password, output)
    if not result.success:
        raise DotsealException(f"Encryption failed: {result.error_message}")

    log.info(f"Encryption took {result.duration.total_seconds():.3f}s")
    if result.backup_path:
        click.echo(f"Backed up {enc(output)} to {rel(result.backup_path)}")
    click.echo(
        f"Encrypted {result.processed_entries} values "
        f"from {dec(path)} to {enc(output)}")


@main.command()
@input_argument
@output_option
@force_option
@password_option
@click.pass_obj
def decrypt(
        sm: SecretManager,
        path: pathlib.Path,
        output: typing.Optional[pathlib.Path],
        force: bool,
        password: typing.Optional[str]):
    """
    Decrypt the values of an encrypted .env file.

    Writes '{file}' for '{file}.enc' and '{file}.decrypted' otherwise, unless
    --output is given. Nothing is written if any value fails to decrypt.
    """
    output = output or decrypted_path(path)
    confirm_overwrite(output, force)

    if password is None:
        password = prompt_password("Decryption password")

    result = sm.decrypt_file(path, password, output)
    if not result.success:
        raise DotsealException(f"Decryption failed: {result.error_message}")

    log.info(f"Decryption took {result.duration.total_seconds():.3f}s")
    if result.backup_path:
        click.echo(f"Backed up {dec(output)} to {rel(result.backup_path)}")
    click.echo(
        f"Decrypted {result.processed_entries} values "
        f"from {enc(path)} to {dec(output)}")

    if ignored_by_git(output) is False:
        click.secho(
            f"Decrypted plaintext {rel(output)} is not ignored by git - "
            f"add it to .gitignore or delete it when you are done",
            fg='yellow')


@main.command()
@input_argument
@password_option
@click.pass_obj
def validate(
        sm: SecretManager,
        path: pathlib.Path,
        password: typing.Optional[str]):
    """Check that a password decrypts an encrypted .env file."""
    if password is None:
        password = prompt_password("Password to validate")

    if not sm.validate_file(path, password):
        raise DotsealException(
            f"Validation failed: {rel(path)} cannot be decrypted "
            f"with the provided password")

    click.echo(f"Validated {enc(path)}")


@main.command()
@input_argument
@click.pass_obj
def info(sm: SecretManager, path: pathlib.Path):
    """Summarise the entries of a .env file without decrypting it."""
    entries = sm.read(path)
    variables = [e for e in entries if e.is_variable]
    comments = [e for e in entries if e.is_comment and e.comment]
    encrypted = [e for e in variables if e.is_encrypted]

    click.echo(f"Entries:          {len(entries)}")
    click.echo(f"Variables:        {len(variables)}")
    click.echo(f"Comments:         {len(comments)}")
    click.echo(f"Encrypted values: {len(encrypted)}")
    click.echo(f"Plaintext values: {len(variables) - len(encrypted)}")

    for entry in variables[:PREVIEW_ENTRIES]:
        if entry.is_encrypted:
            click.echo(f"  {entry.key} = {click.style('[encrypted]', fg='green')}")
        elif len(entry.value) > PREVIEW_LENGTH:
            click.echo(f"  {entry.key} = {entry.value[:PREVIEW_LENGTH]}...")
        else:
            click.echo(f"  {entry.key} = {entry.value}")

    if len(variables) > PREVIEW_ENTRIES:
        click.echo(f"  ... and {len(variables) - PREVIEW_ENTRIES} more")
