from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

from greengrid.models.session import PowerSource


class _WireModel(BaseModel):
    # Champs nommés côté Python, alias = noms du backend
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class LoadReading(_WireModel):
    value: float = Field(..., description="Current grid load in kW")
    capacity: float = Field(..., description="Grid capacity in kW")
    percentage: float


class SystemHealth(_WireModel):
    green_score: float = Field(..., ge=0, le=100)


class EnergyMix(_WireModel):
    renewable_users: int = 0
    conventional_users: int = 0
    paused_users: int = 0

    @property
    def total_users(self) -> int:
        return self.renewable_users + self.conventional_users + self.paused_users


class GenerationForecast(_WireModel):
    solar_kw: float = Field(..., alias="solar_now_kw")
    wind_kw: float = Field(..., alias="wind_now_kw")
    net_green_available_kw: float = Field(..., description="Negative when demand exceeds green generation")

    @property
    def is_deficit(self) -> bool:
        return self.net_green_available_kw < 0


class LiveSession(_WireModel):
    slot: str
    vehicle: str
    mode: str
    source: str

    @property
    def power_source(self) -> Optional[PowerSource]:
        return PowerSource.from_label(self.source)


class TelemetrySnapshot(_WireModel):
    """
    Réponse complète de GET /admin/dashboard_stats

    Remplacée en bloc à chaque poll réussi, jamais fusionnée.
    """
    load: LoadReading = Field(..., alias="current_load")
    health: SystemHealth = Field(..., alias="system_health")
    energy_mix: EnergyMix
    generation: GenerationForecast = Field(..., alias="predictions")
    live_sessions: List[LiveSession] = Field(default_factory=list)

    @property
    def health_score(self) -> float:
        return self.health.green_score

    @property
    def load_level(self) -> str:
        """Niveau de charge affiché par le dashboard (<50% normal, <70% elevated)"""
        if self.load.percentage < 50:
            return "normal"
        if self.load.percentage < 70:
            return "elevated"
        return "critical"
