import json
import logging
import os
import platform
from pathlib import Path
from typing import Dict, Optional

from pydantic import ValidationError

from errors import StorageError
from settings import AUTH_DIR
from .credentials import Credential, credential_adapter

logger = logging.getLogger(__name__)

AUTH_FILE_SUFFIX = "-auth.json"


class CredentialStore:
    """Per-provider credential files with owner-only permissions

    Each provider's record lives in ``<auth_dir>/<provider>-auth.json``.
    Unreadable or malformed files are treated as absent.
    """

    def __init__(self, auth_dir: Optional[str] = None):
        self.auth_dir = Path(auth_dir if auth_dir else AUTH_DIR)

    def _path_for(self, provider: str) -> Path:
        return self.auth_dir / f"{provider}{AUTH_FILE_SUFFIX}"

    def _ensure_secure_directory(self):
        """Create the auth directory with secure permissions"""
        if not self.auth_dir.exists():
            self.auth_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(self.auth_dir, 0o700)

    def get(self, provider: str) -> Optional[Credential]:
        """Load the stored credential for a provider, or None"""
        path = self._path_for(provider)
        if not path.exists():
            return None

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return credential_adapter.validate_python(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed credential record for {provider}: {e.error_count()} error(s)")
            return None
        except (ValueError, OSError) as e:
            # ValueError covers both JSONDecodeError and UnicodeDecodeError
            logger.warning(f"Could not read credentials for {provider}: {e}")
            return None

    def set(self, provider: str, credential: Credential) -> None:
        """Persist a credential, replacing any existing record

        Raises:
            StorageError: If the record could not be written
        """
        path = self._path_for(provider)
        try:
            self._ensure_secure_directory()
            path.write_text(json.dumps(credential.model_dump(), indent=2))
            # Set file permissions to 600 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(path, 0o600)
        except OSError as e:
            raise StorageError(f"Failed to store authentication for {provider}: {e}") from e
        logger.debug(f"Stored {credential.type} credential for {provider} at {path}")

    def remove(self, provider: str) -> None:
        """Delete a provider's record; missing records are ignored"""
        path = self._path_for(provider)
        try:
            path.unlink()
            logger.debug(f"Removed credentials for {provider}")
        except FileNotFoundError:
            pass

    def all(self) -> Dict[str, Credential]:
        """Every readable record in the auth directory, keyed by provider"""
        if not self.auth_dir.is_dir():
            return {}

        records: Dict[str, Credential] = {}
        for path in sorted(self.auth_dir.glob(f"*{AUTH_FILE_SUFFIX}")):
            provider = path.name[: -len(AUTH_FILE_SUFFIX)]
            credential = self.get(provider)
            if credential is not None:
                records[provider] = credential
        return records
