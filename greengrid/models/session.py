from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from enum import Enum
import math

from greengrid.models.vehicle import VEHICLE_ID_PATTERN


class ChargingMode(str, Enum):
    CHARGE_NOW = "CHARGE_NOW"
    FULL_CHARGE = "FULL_CHARGE"  # Eco: attend le renouvelable
    CUSTOM = "CUSTOM"


DEFAULT_MODE = ChargingMode.CHARGE_NOW

# Quantité envoyée pour les modes autres que CUSTOM
NO_CUSTOM_KWH = 0


class PowerSource(str, Enum):
    RENEWABLE = "RENEWABLE"
    CONVENTIONAL = "CONVENTIONAL"
    PAUSED = "PAUSED"

    @classmethod
    def from_label(cls, label: str) -> Optional["PowerSource"]:
        """Le backend renvoie un libellé libre qui contient le marqueur de source"""
        for source in cls:
            if source.value in label:
                return source
        return None


SOURCE_BADGES = {
    PowerSource.RENEWABLE: "Powered by Green Energy",
    PowerSource.CONVENTIONAL: "Grid Power (High Load)",
    PowerSource.PAUSED: "Waiting for Solar Peak",
}


class EnergyLimitRange(BaseModel):
    """Enveloppe du slider kWh du mode CUSTOM"""
    model_config = ConfigDict(frozen=True)

    min: int = Field(10, gt=0)
    max: int = Field(100, gt=0)
    step: int = Field(5, gt=0)
    default: int = 50

    @model_validator(mode="after")
    def _check_envelope(self) -> "EnergyLimitRange":
        if self.min >= self.max:
            raise ValueError(f"min ({self.min}) must be lower than max ({self.max})")
        if (self.max - self.min) % self.step != 0:
            raise ValueError(f"range {self.min}-{self.max} is not a multiple of step {self.step}")
        if not self.contains(self.default):
            raise ValueError(f"default {self.default} is outside the envelope or off-step")
        return self

    def contains(self, quantity: int) -> bool:
        return self.min <= quantity <= self.max and (quantity - self.min) % self.step == 0

    def clamp(self, quantity: float) -> int:
        """
        Ramener une valeur dans l'enveloppe

        Arrondi au pas le plus proche (à partir de min), puis borné à [min, max].
        Raises ValueError pour NaN et les infinis.
        """
        if not math.isfinite(quantity):
            raise ValueError(f"Energy quantity must be a finite number, got {quantity!r}")
        steps = math.floor((quantity - self.min) / self.step + 0.5)
        value = self.min + steps * self.step
        return int(max(self.min, min(self.max, value)))


class SessionRequest(BaseModel):
    """Corps de POST /connect, construit une seule fois par tentative"""
    model_config = ConfigDict(frozen=True)

    vehicle_id: str = Field(..., pattern=VEHICLE_ID_PATTERN)
    mode: ChargingMode
    custom_kwh: int = Field(NO_CUSTOM_KWH, ge=0, description="Energy limit in kWh, 0 unless mode is CUSTOM")

    @classmethod
    def build(cls, vehicle_id: str, mode: ChargingMode, custom_kwh: int) -> "SessionRequest":
        return cls(
            vehicle_id=vehicle_id,
            mode=mode,
            custom_kwh=custom_kwh if mode == ChargingMode.CUSTOM else NO_CUSTOM_KWH,
        )

    def to_payload(self) -> dict:
        return self.model_dump(mode="json")


class SessionResult(BaseModel):
    """Réponse du backend après connexion du véhicule"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    slot_id: str = Field(..., alias="Slot_ID")
    initial_source: str = Field(..., alias="Initial_Source")
    estimated_bill: float = Field(..., alias="Est_Bill", description="Estimated bill, 2 decimals")

    @field_validator("estimated_bill")
    @classmethod
    def _round_bill(cls, value: float) -> float:
        return round(value, 2)

    @property
    def power_source(self) -> Optional[PowerSource]:
        return PowerSource.from_label(self.initial_source)

    @property
    def badge(self) -> Optional[str]:
        source = self.power_source
        return SOURCE_BADGES.get(source) if source else None
