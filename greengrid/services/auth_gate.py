from enum import Enum
import logging

from greengrid.core.exceptions import BackendError, InvalidCredentials, Unauthenticated
from greengrid.services.credential_store import CredentialStore
from greengrid.services.http_client import HttpClient
from greengrid.services.notifications import Notifier

logger = logging.getLogger(__name__)

LOGIN_PATH = "/admin/login"


class AuthStatus(str, Enum):
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    INVALID_CREDENTIALS = "invalid_credentials"


class AuthGate:
    """Contrôle d'accès au dashboard opérateur"""

    def __init__(self, credentials: CredentialStore, http: HttpClient, notifier: Notifier):
        self.credentials = credentials
        self.http = http
        self.notifier = notifier

    def check_access(self) -> AuthStatus:
        """Vérification locale uniquement, aucun appel réseau"""
        if self.credentials.get() is None:
            logger.info("No operator credential, redirecting to login")
            return AuthStatus.UNAUTHENTICATED
        return AuthStatus.AUTHENTICATED

    def require_access(self):
        if self.check_access() != AuthStatus.AUTHENTICATED:
            raise Unauthenticated()

    async def login(self, username: str, password: str) -> AuthStatus:
        """
        Échanger username/password contre un token

        Tout échec (statut non-2xx, transport, token absent) donne
        INVALID_CREDENTIALS et rien n'est stocké.
        """
        try:
            data = await self.http.post_json(LOGIN_PATH, {"username": username, "password": password})
            token = data.get("token") if isinstance(data, dict) else None
            if not isinstance(token, str) or not token:
                raise InvalidCredentials("Login response carries no token")
        except (BackendError, InvalidCredentials) as e:
            logger.warning(f"Login failed for {username!r}: {e}")
            self.notifier.error(InvalidCredentials.user_message)
            return AuthStatus.INVALID_CREDENTIALS

        self.credentials.set(token)
        logger.info(f"Operator {username!r} logged in")
        self.notifier.success("Login successful!")
        return AuthStatus.AUTHENTICATED

    def logout(self):
        self.credentials.clear()
        logger.info("Operator logged out")
