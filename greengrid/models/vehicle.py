from pydantic import BaseModel, Field
from typing import Tuple
from enum import Enum


class CharacterClass(str, Enum):
    LETTERS = "letters"
    DIGITS = "digits"


class SegmentSpec(BaseModel):
    """Un segment du numéro de véhicule (longueur fixe + classe de caractères)"""
    character_class: CharacterClass
    length: int = Field(..., gt=0, description="Exact number of characters")

    def accepts(self, value: str) -> bool:
        """Valeur acceptable pour ce segment (vide autorisé, jamais plus long)"""
        if len(value) > self.length:
            return False
        if self.character_class == CharacterClass.LETTERS:
            return all("A" <= c <= "Z" for c in value)
        return all("0" <= c <= "9" for c in value)

    def is_filled(self, value: str) -> bool:
        return len(value) == self.length


# Format AA-11-AA-1111
VEHICLE_ID_SEGMENTS: Tuple[SegmentSpec, ...] = (
    SegmentSpec(character_class=CharacterClass.LETTERS, length=2),
    SegmentSpec(character_class=CharacterClass.DIGITS, length=2),
    SegmentSpec(character_class=CharacterClass.LETTERS, length=2),
    SegmentSpec(character_class=CharacterClass.DIGITS, length=4),
)

VEHICLE_ID_SEPARATOR = "-"
VEHICLE_ID_PATTERN = r"^[A-Z]{2}-[0-9]{2}-[A-Z]{2}-[0-9]{4}$"
