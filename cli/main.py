"""
Command line access to a filestore snapshot file.

Example:
    filestore put ./state/data.db greeting hello
    filestore put ./state/data.db secret s3cr3t --password hunter2
    filestore show ./state/data.db
    filestore get ./state/data.db secret --password hunter2
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import click

from filestore.errors import StorageError
from filestore.settings import Settings
from filestore.store import FileStore

allow_option = click.option(
    "--allow",
    "allow",
    multiple=True,
    metavar="TYPE",
    help="Extra type descriptor (module.QualName) to permit on load. Repeatable.",
)


def _open(path: str, allow: Tuple[str, ...]) -> FileStore:
    settings = Settings.load()
    try:
        return FileStore.from_settings(path, settings, allowed_types=allow)
    except StorageError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


def _persist(store: FileStore) -> None:
    if store.autosave:
        return
    try:
        store.save()
    except StorageError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@click.group()
@click.version_option(package_name="filestore")
def cli():
    """Inspect and edit filestore snapshot files."""
    logging.basicConfig(level=Settings.load().LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.argument("path")
@allow_option
def show(path: str, allow: Tuple[str, ...]):
    """Print every entry; encrypted values are masked."""
    click.echo(str(_open(path, allow)))


@cli.command()
@click.argument("path")
@allow_option
def keys(path: str, allow: Tuple[str, ...]):
    """List the keys, one per line."""
    for key in sorted(_open(path, allow).keys()):
        click.echo(key)


@cli.command()
@click.argument("path")
@click.argument("key")
@click.option("--password", default=None, help="Decrypt the value with this password")
@allow_option
def get(path: str, key: str, password: Optional[str], allow: Tuple[str, ...]):
    """Print the value stored under KEY."""
    store = _open(path, allow)
    if key not in store:
        raise click.ClickException(f"No such key: {key}")
    if password is None:
        click.echo(str(store.get(key)))
        return
    try:
        click.echo(str(store.get_decrypted(key, password)))
    except StorageError as e:
        raise click.ClickException(str(e)) from e


@cli.command()
@click.argument("path")
@click.argument("key")
@click.argument("value")
@click.option("--password", default=None, help="Encrypt the value with this password")
@allow_option
def put(path: str, key: str, value: str, password: Optional[str], allow: Tuple[str, ...]):
    """Store the string VALUE under KEY."""
    store = _open(path, allow)
    if password is None:
        store.put(key, value)
    else:
        try:
            store.put_encrypted(key, value, password)
        except ValueError as e:
            raise click.ClickException(f"Invalid password: {e}") from e
    _persist(store)
    click.echo(f"✅ Stored {key}")


@cli.command()
@click.argument("path")
@click.argument("key")
@allow_option
def remove(path: str, key: str, allow: Tuple[str, ...]):
    """Delete KEY if present."""
    store = _open(path, allow)
    removed = key in store
    store.remove(key)
    _persist(store)
    click.echo(f"✅ Removed {key}" if removed else f"Nothing stored under {key}")


if __name__ == "__main__":
    cli()
