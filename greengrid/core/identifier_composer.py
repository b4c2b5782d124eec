from typing import List, Sequence, Tuple
import logging

from greengrid.core.exceptions import IncompleteIdentifier
from greengrid.models.vehicle import VEHICLE_ID_SEGMENTS, VEHICLE_ID_SEPARATOR, SegmentSpec

logger = logging.getLogger(__name__)


class IdentifierComposer:
    """
    Saisie segmentée du numéro de véhicule (AA-11-AA-1111)

    Responsabilités:
    - Valider chaque frappe (classe de caractères + longueur) avant de la stocker
    - Avancer le focus quand un segment est rempli
    - Reculer le focus sur backspace dans un segment vide
    - Composer l'identifiant complet

    Les frappes invalides sont ignorées silencieusement, comme sur un clavier physique.
    """

    def __init__(self, segments: Sequence[SegmentSpec] = VEHICLE_ID_SEGMENTS):
        self.specs: Tuple[SegmentSpec, ...] = tuple(segments)
        self._values: List[str] = [""] * len(self.specs)
        self.focus: int = 0

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self._values)

    @property
    def last_index(self) -> int:
        return len(self.specs) - 1

    @property
    def is_complete(self) -> bool:
        return all(spec.is_filled(value) for spec, value in zip(self.specs, self._values))

    def _has_segment(self, segment_index: int) -> bool:
        return 0 <= segment_index <= self.last_index

    def on_input(self, segment_index: int, raw_value: str) -> bool:
        """
        Nouvelle valeur saisie dans un segment

        Returns:
            bool: True si la valeur a été acceptée et stockée
        """
        if not self._has_segment(segment_index):
            return False

        spec = self.specs[segment_index]
        value = raw_value.upper()

        if not spec.accepts(value):
            return False

        self._values[segment_index] = value
        self.focus = segment_index

        if spec.is_filled(value) and segment_index < self.last_index:
            self.focus = segment_index + 1

        return True

    def on_backspace_at_empty(self, segment_index: int) -> bool:
        """Backspace dans un segment: revient au segment précédent s'il est vide"""
        if not self._has_segment(segment_index):
            return False
        if self._values[segment_index] != "" or segment_index == 0:
            return False

        self.focus = segment_index - 1
        return True

    def compose(self) -> str:
        if not self.is_complete:
            raise IncompleteIdentifier()
        return VEHICLE_ID_SEPARATOR.join(self._values)

    def reset(self):
        self._values = [""] * len(self.specs)
        self.focus = 0

    def fill(self, vehicle_id: str) -> bool:
        """
        Saisir un identifiant complet "MH-12-AB-1234" segment par segment

        Chaque segment passe par on_input, donc les mêmes règles s'appliquent.
        Returns True si tous les segments ont été acceptés.
        """
        parts = vehicle_id.strip().split(VEHICLE_ID_SEPARATOR)
        if len(parts) != len(self.specs):
            logger.debug(f"Vehicle id has {len(parts)} segments, expected {len(self.specs)}")
            return False

        return all([self.on_input(index, part) for index, part in enumerate(parts)])
