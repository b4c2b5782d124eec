from typing import Any, Optional
import logging

import httpx

from greengrid.config import settings
from greengrid.core.exceptions import BackendError
from greengrid.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class HttpClient:
    """
    Transport HTTP vers le backend GreenGrid

    Ajoute "Authorization: Bearer <token>" à chaque requête quand le
    CredentialStore contient un token, jamais d'en-tête vide sinon.
    """

    def __init__(
            self,
            credentials: CredentialStore,
            base_url: str = settings.API_BASE_URL,
            timeout: Optional[float] = settings.HTTP_TIMEOUT,
            transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.credentials = credentials
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    def _auth_headers(self) -> dict:
        token = self.credentials.get()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        """
        Envoyer une requête et décoder la réponse JSON

        Raises:
            BackendError: statut non-2xx (status_code renseigné), erreur de
                transport ou corps non JSON (status_code=None)
        """
        try:
            response = await self.client.request(
                method,
                path,
                json=payload,
                headers=self._auth_headers(),
            )
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} transport error: {e}")
            raise BackendError(f"Transport error on {method} {path}: {e}") from e

        logger.debug(f"{method} {path} -> {response.status_code}")

        if not response.is_success:
            raise BackendError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"{method} {path} returned a non-JSON body") from e

    async def post_json(self, path: str, payload: dict) -> Any:
        return await self.request("POST", path, payload)

    async def get_json(self, path: str) -> Any:
        return await self.request("GET", path)
