"""Schema migrations.

migrate() walks the registered steps from the stored version up to
SOFTWARE_DB_VERSION. The version marker is written by the opener only after
all steps succeed, so a crash in between re-runs the steps on the next open:
every step must be safe to apply twice.
"""
from __future__ import annotations
import logging
from typing import TYPE_CHECKING
from .errors import StorageError
from .models import Credential, CredentialType
from .schema import SOFTWARE_DB_VERSION

if TYPE_CHECKING:
	from .storage import Database

log = logging.getLogger(__name__)

def _add_credential_store(db: 'Database') -> None:
	"""v0 -> v1: move the OAuth token from the settings into the credential list."""
	settings = db.get_settings()
	if not settings.api_key:
		return
	cred = Credential(name='Evernote', secret=settings.api_key, cred_type=CredentialType.EVERNOTE)
	if cred not in db.credentials.get_all():
		db.credentials.add(cred)
	settings.api_key = ''
	db.store_settings(settings)
	log.info('Moved stored OAuth token to the credential store')

# from_version -> step bringing the store to from_version + 1
STEPS = {
	0: _add_credential_store,
}

def migrate(db: 'Database', from_version: int) -> None:
	for version in range(from_version, SOFTWARE_DB_VERSION):
		step = STEPS.get(version)
		if step is None:
			raise StorageError(f"No migration from db version {version}")
		log.debug(f"Applying migration {version} -> {version + 1}")
		step(db)
