from enum import Enum
from typing import Callable, List, Optional
import asyncio
import logging

from pydantic import ValidationError

from greengrid.config import settings
from greengrid.core.exceptions import (
    BackendError,
    ConnectionFailed,
    ControllerStateError,
    GridCapacityExceeded,
    IncompleteIdentifier,
    TerminalError,
)
from greengrid.core.identifier_composer import IdentifierComposer
from greengrid.models.session import (
    DEFAULT_MODE,
    ChargingMode,
    EnergyLimitRange,
    SessionRequest,
    SessionResult,
)
from greengrid.services.http_client import HttpClient
from greengrid.services.notifications import Notifier

logger = logging.getLogger(__name__)

CONNECT_PATH = "/connect"
CAPACITY_EXCEEDED_STATUS = 503


class ControllerState(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"  # transitoire, retour immédiat en EDITING


def default_energy_range() -> EnergyLimitRange:
    return EnergyLimitRange(
        min=settings.CUSTOM_KWH_MIN,
        max=settings.CUSTOM_KWH_MAX,
        step=settings.CUSTOM_KWH_STEP,
        default=settings.CUSTOM_KWH_DEFAULT,
    )


class SessionRequestController:
    """
    Cycle de vie d'une demande de session au terminal de charge

    EDITING -> SUBMITTING -> SUCCESS
                          -> FAILED -> EDITING

    - Un seul appel réseau par submit(), jamais de retry automatique
    - Un submit() pendant SUBMITTING est ignoré (pas de double session)
    - Les erreurs sont notifiées à l'utilisateur, jamais propagées
    """

    def __init__(
            self,
            http: HttpClient,
            notifier: Notifier,
            composer: Optional[IdentifierComposer] = None,
            energy_range: Optional[EnergyLimitRange] = None
    ):
        self.http = http
        self.notifier = notifier
        self.composer = composer or IdentifierComposer()
        self.energy_range = energy_range or default_energy_range()

        self.state = ControllerState.EDITING
        self.mode: ChargingMode = DEFAULT_MODE
        self.custom_kwh: int = self.energy_range.default
        self.result: Optional[SessionResult] = None
        self.last_error: Optional[TerminalError] = None

        self.listeners: List[Callable[[ControllerState, ControllerState], None]] = []

    def add_listener(self, listener: Callable[[ControllerState, ControllerState], None]):
        self.listeners.append(listener)

    def _transition(self, new_state: ControllerState):
        old_state = self.state
        self.state = new_state
        logger.debug(f"Session request: {old_state.value} -> {new_state.value}")

        for listener in self.listeners:
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Session state listener failed: {e}", exc_info=True)

    def _require_editing(self, operation: str):
        if self.state != ControllerState.EDITING:
            raise ControllerStateError(f"{operation} not allowed while {self.state.value}")

    def select_mode(self, mode: ChargingMode):
        self._require_editing("select_mode")
        # custom_kwh est conservé en mémoire, ignoré au submit hors CUSTOM
        self.mode = ChargingMode(mode)

    def set_custom_quantity(self, quantity: float) -> int:
        """
        Régler le slider kWh (mode CUSTOM uniquement)

        Returns:
            int: Valeur stockée après arrondi au pas et bornage
        """
        self._require_editing("set_custom_quantity")
        if self.mode != ChargingMode.CUSTOM:
            raise ControllerStateError("Custom quantity can only be set in CUSTOM mode")

        self.custom_kwh = self.energy_range.clamp(quantity)
        return self.custom_kwh

    def build_request(self) -> SessionRequest:
        """Raises IncompleteIdentifier si le numéro n'est pas complet"""
        vehicle_id = self.composer.compose()
        return SessionRequest.build(vehicle_id, self.mode, self.custom_kwh)

    async def submit(self) -> Optional[SessionResult]:
        """
        Envoyer la demande de session

        Returns:
            SessionResult si le backend a accepté, None sinon (erreur notifiée
            et disponible dans last_error, ou submit déjà en cours)
        """
        if self.state == ControllerState.SUBMITTING:
            logger.info("Submit ignored: a request is already in flight")
            return None
        if self.state == ControllerState.SUCCESS:
            raise ControllerStateError("Session already created, reset the terminal first")

        self.last_error = None

        try:
            request = self.build_request()
        except IncompleteIdentifier as e:
            self.last_error = e
            self.notifier.error(e.user_message)
            return None

        self._transition(ControllerState.SUBMITTING)
        logger.info(f"Connecting vehicle {request.vehicle_id}, mode={request.mode.value}, "
                    f"custom_kwh={request.custom_kwh}")

        try:
            data = await self.http.post_json(CONNECT_PATH, request.to_payload())
            result = SessionResult.model_validate(data)
        except BackendError as e:
            self._fail(self._classify(e))
            return None
        except ValidationError as e:
            logger.error(f"Unexpected /connect response: {e}")
            self._fail(ConnectionFailed())
            return None
        except Exception as e:
            logger.error(f"Unexpected error while connecting vehicle: {e}", exc_info=True)
            self._fail(ConnectionFailed(str(e)))
            return None
        finally:
            # Jamais bloqué en SUBMITTING, y compris sur annulation
            if self.state == ControllerState.SUBMITTING:
                self._transition(ControllerState.EDITING)

        self.result = result
        self._transition(ControllerState.SUCCESS)
        logger.info(f"Vehicle {request.vehicle_id} connected: slot={result.slot_id}, "
                    f"source={result.initial_source}, bill={result.estimated_bill:.2f}")
        self.notifier.success("Vehicle connected successfully!")
        return result

    @staticmethod
    def _classify(error: BackendError) -> TerminalError:
        if error.status_code == CAPACITY_EXCEEDED_STATUS:
            return GridCapacityExceeded()
        # Tous les autres échecs sont traités de la même façon
        return ConnectionFailed(str(error))

    def _fail(self, error: TerminalError):
        self.last_error = error
        self._transition(ControllerState.FAILED)
        logger.warning(f"Session request failed: {error}")
        self.notifier.error(error.user_message)
        self._transition(ControllerState.EDITING)

    def reset(self):
        """Nouvelle session: vide le numéro, le résultat et revient au mode par défaut"""
        if self.state == ControllerState.SUBMITTING:
            raise ControllerStateError("Cannot reset while a request is in flight")

        self.result = None
        self.last_error = None
        self.mode = DEFAULT_MODE
        self.custom_kwh = self.energy_range.default
        self.composer.reset()

        if self.state != ControllerState.EDITING:
            self._transition(ControllerState.EDITING)
