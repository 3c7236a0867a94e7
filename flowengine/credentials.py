"""Credential source backed by the credentials table.

Values are stored as Fernet tokens and decrypted only for immediate use by
an adapter. Callers must not persist or log the decrypted value.
"""
import logging

from . import models
from .crypto import decrypt_value, encrypt_value
from .errors import CredentialNotFoundError

logger = logging.getLogger(__name__)


class SqlCredentialSource:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def create(self, name: str, type, value: str) -> str:
        """Store an encrypted credential and return its id."""
        ctype = models.CredentialType(type)
        db = self.session_factory()
        try:
            cred = models.Credential(name=name, type=ctype.value, value=encrypt_value(value))
            db.add(cred)
            db.commit()
            db.refresh(cred)
            logger.info("stored credential id=%s type=%s", cred.id, cred.type)
            return cred.id
        finally:
            db.close()

    def resolve(self, credential_id: str) -> str:
        """Return the decrypted secret for credential_id.

        Raises:
            CredentialNotFoundError: no such credential, or its token cannot be
                decrypted with the current key.
        """
        db = self.session_factory()
        try:
            cred = db.query(models.Credential).filter(models.Credential.id == credential_id).first()
            if cred is None:
                raise CredentialNotFoundError(f"Credential '{credential_id}' not found")
            token = cred.value
        finally:
            db.close()
        try:
            return decrypt_value(token)
        except ValueError as e:
            # the token is unreadable with this key; retrying will not help
            logger.warning("failed to decrypt credential id=%s: %s", credential_id, e)
            raise CredentialNotFoundError(f"Credential '{credential_id}' could not be decrypted") from e
