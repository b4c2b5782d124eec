import asyncio
from collections import deque

import httpx
import pytest

from greengrid.services.credential_store import CredentialStore
from greengrid.services.http_client import HttpClient
from greengrid.services.notifications import Notifier
from simulators.backend_simulator import GridState, create_app


DASHBOARD_PAYLOAD = {
    "current_load": {"value": 33.0, "capacity": 100.0, "percentage": 33.0},
    "system_health": {"green_score": 87.5},
    "energy_mix": {"renewable_users": 2, "conventional_users": 1, "paused_users": 0},
    "predictions": {"solar_now_kw": 42.0, "wind_now_kw": 18.5, "net_green_available_kw": 27.5},
    "live_sessions": [
        {"slot": "SLOT-001", "vehicle": "MH-12-AB-1234", "mode": "CHARGE_NOW", "source": "RENEWABLE"},
        {"slot": "SLOT-002", "vehicle": "KA-01-XY-0001", "mode": "FULL_CHARGE", "source": "RENEWABLE"},
        {"slot": "SLOT-003", "vehicle": "DL-05-CD-9876", "mode": "CUSTOM", "source": "CONVENTIONAL"},
    ],
}


def build_dashboard_payload(**overrides) -> dict:
    payload = {key: value for key, value in DASHBOARD_PAYLOAD.items()}
    payload.update(overrides)
    return payload


class FakeHttp:
    """HttpClient scripté: chaque appel consomme la prochaine réponse (dict ou exception)"""

    def __init__(self):
        self.calls = []
        self.responses = deque()
        self.release = None  # asyncio.Event pour retenir les réponses

    def queue(self, *responses):
        self.responses.extend(responses)

    def hold(self):
        self.release = asyncio.Event()

    async def _respond(self):
        if self.release is not None:
            await self.release.wait()
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response

    async def post_json(self, path, payload):
        self.calls.append(("POST", path, payload))
        return await self._respond()

    async def get_json(self, path):
        self.calls.append(("GET", path, None))
        return await self._respond()


@pytest.fixture
def fake_http():
    return FakeHttp()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def credentials():
    return CredentialStore(path=None)


@pytest.fixture
def dashboard_payload():
    """Fabrique de payloads /admin/dashboard_stats, champs de premier niveau surchargeables"""
    return build_dashboard_payload


@pytest.fixture
def grid_state():
    return GridState(max_sessions=2)


@pytest.fixture
def simulator_http(credentials, grid_state):
    """HttpClient branché sur le simulateur FastAPI via ASGITransport"""
    transport = httpx.ASGITransport(app=create_app(grid_state))
    return HttpClient(credentials, base_url="http://test", transport=transport)
