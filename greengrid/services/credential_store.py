import json
import os
from pathlib import Path
from typing import Optional
import logging

from greengrid.config import settings

logger = logging.getLogger(__name__)

CREDENTIAL_FILE_MODE = 0o600


class CredentialStore:
    """
    Détenteur du token bearer de l'opérateur

    Le token est écrit dans un fichier JSON sous une clé fixe pour survivre
    aux redémarrages. Avec path=None le store reste en mémoire.
    """

    def __init__(self, path: Optional[str] = None, key: str = settings.CREDENTIAL_KEY):
        self.path: Optional[Path] = Path(path).expanduser() if path else None
        self.key = key
        self._token: Optional[str] = self._load()

    def _load(self) -> Optional[str]:
        if self.path is None or not self.path.exists():
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Could not read credential store {self.path}: {e}")
            return None

        token = data.get(self.key) if isinstance(data, dict) else None
        return token if isinstance(token, str) and token else None

    def _save(self) -> bool:
        """Persister le token courant. Returns False si le fichier n'a pas pu être écrit."""
        if self.path is None:
            return True

        data = {}
        if self.path.exists():
            try:
                with open(self.path, "r") as f:
                    data = json.load(f)
            except (json.JSONDecodeError, OSError):
                data = {}
            if not isinstance(data, dict):
                data = {}

        if self._token is None:
            data.pop(self.key, None)
        else:
            data[self.key] = self._token

        # Fichier lisible par l'opérateur seul (0600)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, CREDENTIAL_FILE_MODE)
            with os.fdopen(fd, "w") as f:
                # os.open ne change pas le mode d'un fichier existant
                os.fchmod(f.fileno(), CREDENTIAL_FILE_MODE)
                json.dump(data, f)
        except OSError as e:
            # Le token reste valable en mémoire pour ce process
            logger.error(f"Could not write credential store {self.path}: {e}")
            return False
        return True

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str):
        if not token:
            raise ValueError("Credential must be a non-empty string")
        self._token = token
        self._save()
        logger.info("Operator credential stored")

    def clear(self):
        self._token = None
        self._save()
        logger.info("Operator credential cleared")


# Instance partagée par tout le process
_credential_store: Optional[CredentialStore] = None


def initialize_credential_store(path: Optional[str] = settings.CREDENTIAL_STORE_PATH) -> CredentialStore:
    """Créer le store global (appelé au démarrage)"""
    global _credential_store
    _credential_store = CredentialStore(path)
    logger.info(f"Credential store initialized ({_credential_store.path or 'memory'})")
    return _credential_store


def get_credential_store() -> CredentialStore:
    if _credential_store is None:
        raise RuntimeError("Credential store not initialized")
    return _credential_store
