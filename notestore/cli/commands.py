"""CLI commands implemented with click.

Inspect and maintain the local store: settings, credentials and the caches
written by the note client. The store location comes from CLINOTE_CONFIG_DIR
when set.
"""
from __future__ import annotations
import json, logging, os, click, lmdb
from contextlib import contextmanager
from pathlib import Path
from notestore.config.settings import DEFAULT_CONFIG_DIR, LOG_FORMAT, LOG_LEVEL
from notestore.lib.errors import StorageError
from notestore.lib.models import Credential, CredentialType
from notestore.lib.storage import Database

def config_dir() -> Path:
	# Resolve dynamically to honor environment overrides in tests
	env_dir = os.environ.get('CLINOTE_CONFIG_DIR')
	return Path(env_dir) if env_dir else DEFAULT_CONFIG_DIR

@contextmanager
def opened_store():
	"""Open the store for one command; report storage errors and exit 1."""
	db = None
	try:
		db = Database.open(config_dir())
		yield db
	except (StorageError, lmdb.Error) as e:
		click.echo(f'Error: {e}')
		raise SystemExit(1)
	finally:
		if db is not None:
			db.close()

@click.group()
@click.option('--debug', is_flag=True, help='Enable debug logging.')
def cli(debug):
	"""clinote local store"""
	logging.basicConfig(level=logging.DEBUG if debug else LOG_LEVEL, format=LOG_FORMAT)

@cli.command()
def info():
	"""Show store location and schema version."""
	with opened_store() as db:
		click.echo(f"Path: {db.path}\nVersion: {db.version()}")

@cli.command('settings')
def show_settings():
	"""Print the stored settings."""
	with opened_store() as db:
		click.echo(json.dumps(db.get_settings().to_dict(), indent=2))

@cli.group()
def credentials():
	"""Manage stored credentials."""

@credentials.command('list')
def list_credentials():
	with opened_store() as db:
		creds = db.credentials.get_all()
		if not creds:
			click.echo('No credentials.')
		for i, c in enumerate(creds):
			click.echo(f"{i}: {c.name} [{c.cred_type.name.lower()}]")

@credentials.command('add')
@click.option('--name', prompt=True)
@click.option('--secret', prompt=True, hide_input=True)
@click.option('--type', 'cred_type', type=click.Choice([t.name.lower() for t in CredentialType]), default='evernote', show_default=True)
def add_credential(name, secret, cred_type):
	"""Add a credential to the end of the list."""
	with opened_store() as db:
		db.credentials.add(Credential(name, secret, CredentialType[cred_type.upper()]))
		click.echo(f'Added credential {name}.')

@credentials.command('remove')
@click.argument('index', type=int)
def remove_credential(index):
	"""Remove the credential at INDEX."""
	with opened_store() as db:
		cred = db.credentials.get_by_index(index)
		db.credentials.remove(cred)
		click.echo(f'Removed credential {cred.name}.')

@cli.command()
def notebooks():
	"""List the cached notebooks."""
	with opened_store() as db:
		cache = db.get_notebook_cache()
		if not cache.notebooks:
			click.echo('No cached notebooks.')
		for nb in cache.notebooks:
			click.echo(f"{nb.name} ({nb.stack})" if nb.stack else nb.name)

@cli.command()
def search():
	"""List the notes from the last search."""
	with opened_store() as db:
		notes = db.get_search()
		if not notes:
			click.echo('No saved search.')
		for i, n in enumerate(notes, 1):
			click.echo(f"{i}: {n.title}")

@cli.command()
def recover():
	"""Show the note draft saved before a failed save."""
	with opened_store() as db:
		note = db.get_note_recovery_point()
		if not note.title and not note.body and not note.md:
			click.echo('No recovery point.')
			return
		click.echo(f"Title: {note.title}\n---\n{note.md or note.body}")
