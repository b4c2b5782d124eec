#!/usr/bin/env python3
"""
Simulateur du backend GreenGrid (slots, facturation, télémétrie)

Réponses figées pour le développement du terminal et les tests, sans
algorithme d'attribution ni de tarification.
"""

import argparse
import logging
import random
import secrets
from typing import Dict, List, Optional

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from greengrid.models.session import ChargingMode, SessionRequest

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"

# Prix indicatif par kWh selon le mode
TARIFFS = {
    ChargingMode.CHARGE_NOW: 0.42,
    ChargingMode.FULL_CHARGE: 0.21,
    ChargingMode.CUSTOM: 0.30,
}
DEFAULT_SESSION_KWH = 40.0


class LoginRequest(BaseModel):
    username: str
    password: str


class GridState(BaseModel):
    """État en mémoire du réseau simulé"""
    capacity_kw: float = Field(100.0, description="Grid capacity in kW")
    max_sessions: int = Field(5, description="Sessions accepted before answering 503")
    session_power_kw: float = 11.0
    solar_kw: float = 42.0
    wind_kw: float = 18.5
    sessions: List[dict] = Field(default_factory=list)
    tokens: List[str] = Field(default_factory=list)

    @property
    def load_kw(self) -> float:
        return round(len(self.sessions) * self.session_power_kw, 1)

    def source_for(self, mode: ChargingMode) -> str:
        green_kw = self.solar_kw + self.wind_kw
        if mode == ChargingMode.FULL_CHARGE and green_kw < self.load_kw + self.session_power_kw:
            return "PAUSED"
        if green_kw >= self.load_kw + self.session_power_kw:
            return "RENEWABLE"
        return "CONVENTIONAL"


def create_app(state: Optional[GridState] = None) -> FastAPI:
    grid = state or GridState()
    app = FastAPI(title="GreenGrid Backend Simulator", version="1.0.0")

    @app.post("/connect", status_code=201)
    async def connect(request: SessionRequest):
        if len(grid.sessions) >= grid.max_sessions:
            logger.warning(f"Grid full, rejecting {request.vehicle_id}")
            raise HTTPException(status_code=503, detail="Grid capacity reached")

        source = grid.source_for(request.mode)
        slot_id = f"SLOT-{len(grid.sessions) + 1:03d}"
        kwh = request.custom_kwh if request.mode == ChargingMode.CUSTOM else DEFAULT_SESSION_KWH

        grid.sessions.append({
            "slot": slot_id,
            "vehicle": request.vehicle_id,
            "mode": request.mode.value,
            "source": source,
        })
        logger.info(f"Vehicle {request.vehicle_id} -> {slot_id} ({source})")

        return {
            "Slot_ID": slot_id,
            "Initial_Source": f"{source}_GRID" if source == "CONVENTIONAL" else source,
            "Est_Bill": round(kwh * TARIFFS[request.mode], 2),
        }

    @app.post("/admin/login")
    async def login(request: LoginRequest):
        if request.username != ADMIN_USERNAME or request.password != ADMIN_PASSWORD:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        token = secrets.token_hex(16)
        grid.tokens.append(token)
        return {"token": token}

    @app.get("/admin/dashboard_stats")
    async def dashboard_stats(authorization: Optional[str] = Header(None)):
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="Missing bearer token")
        if authorization[len("Bearer "):] not in grid.tokens:
            raise HTTPException(status_code=401, detail="Unknown token")

        counts: Dict[str, int] = {"RENEWABLE": 0, "CONVENTIONAL": 0, "PAUSED": 0}
        for session in grid.sessions:
            counts[session["source"]] += 1

        load = grid.load_kw
        green_kw = grid.solar_kw + grid.wind_kw
        total = max(len(grid.sessions), 1)

        return {
            "current_load": {
                "value": load,
                "capacity": grid.capacity_kw,
                "percentage": round(load / grid.capacity_kw * 100, 1),
            },
            "system_health": {"green_score": round(counts["RENEWABLE"] / total * 100, 1)},
            "energy_mix": {
                "renewable_users": counts["RENEWABLE"],
                "conventional_users": counts["CONVENTIONAL"],
                "paused_users": counts["PAUSED"],
            },
            "predictions": {
                "solar_now_kw": grid.solar_kw,
                "wind_now_kw": grid.wind_kw,
                "net_green_available_kw": round(green_kw - load, 1),
            },
            "live_sessions": grid.sessions,
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "sessions": len(grid.sessions)}

    return app


def main():
    parser = argparse.ArgumentParser(description="GreenGrid backend simulator")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--max-sessions", type=int, default=5)
    parser.add_argument("--jitter", action="store_true", help="Randomize solar/wind generation")
    args = parser.parse_args()

    state = GridState(max_sessions=args.max_sessions)
    if args.jitter:
        state.solar_kw = round(random.uniform(10.0, 60.0), 1)
        state.wind_kw = round(random.uniform(5.0, 30.0), 1)

    import uvicorn

    uvicorn.run(create_app(state), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
