import asyncio
from typing import Callable, List, Optional, Set
import logging

from pydantic import ValidationError

from greengrid.config import settings
from greengrid.core.exceptions import BackendError
from greengrid.models.telemetry import TelemetrySnapshot
from greengrid.services.http_client import HttpClient
from greengrid.services.notifications import Notifier

logger = logging.getLogger(__name__)

DASHBOARD_STATS_PATH = "/admin/dashboard_stats"


class TelemetryPoller:
    """
    Boucle de polling du dashboard opérateur

    Lifecycle:
      1. start(): premier tick immédiat, puis un tick toutes les `interval` secondes
      2. Chaque tick est une tâche indépendante: un appel bloqué ne retarde pas les suivants
      3. Succès -> latest_snapshot remplacé en bloc; échec -> snapshot conservé + notification
      4. stop(): annule la boucle, les réponses encore en vol sont ignorées

    Pas de backoff: un échec est supposé transitoire et corrigé au tick suivant.
    """

    def __init__(
            self,
            http: HttpClient,
            notifier: Notifier,
            interval: float = settings.POLL_INTERVAL_SECONDS
    ):
        self.http = http
        self.notifier = notifier
        self.interval = interval

        self.latest_snapshot: Optional[TelemetrySnapshot] = None
        self.running = False

        # Garde contre les réponses périmées
        self._generation = 0
        self._issued = 0
        self._applied = 0

        self._loop_task: Optional[asyncio.Task] = None
        self._tick_tasks: Set[asyncio.Task] = set()
        self.listeners: List[Callable[[TelemetrySnapshot], None]] = []

    def add_listener(self, listener: Callable[[TelemetrySnapshot], None]):
        self.listeners.append(listener)

    def start(self) -> bool:
        """Démarrer la boucle (doit être appelé depuis l'event loop). No-op si déjà démarrée."""
        if self.running:
            logger.debug("Telemetry poller already running")
            return False

        self.running = True
        self._generation += 1
        self._loop_task = asyncio.create_task(
            self._run(self._generation),
            name="telemetry-poller"
        )
        logger.info(f"Telemetry polling started (every {self.interval}s)")
        return True

    def stop(self):
        """Arrêter la boucle. Peut être appelé plusieurs fois."""
        if not self.running:
            return

        self.running = False
        self._generation += 1

        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
        self._loop_task = None

        logger.info("Telemetry polling stopped")

    async def aclose(self):
        """
        Teardown complet: stop() puis annulation des ticks encore en vol

        Sans timeout local, un appel bloqué retiendrait sinon la fermeture.
        """
        loop_task = self._loop_task
        self.stop()

        if loop_task is not None:
            try:
                await loop_task
            except asyncio.CancelledError:
                pass

        pending = list(self._tick_tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self, generation: int):
        while self.running and generation == self._generation:
            task = asyncio.create_task(self.tick())
            self._tick_tasks.add(task)
            task.add_done_callback(self._tick_tasks.discard)

            await asyncio.sleep(self.interval)

    def _is_current(self, generation: int) -> bool:
        return self.running and generation == self._generation

    async def tick(self) -> bool:
        """
        Un cycle requête + mise à jour

        Le résultat n'est appliqué que si le poller tourne toujours à l'arrivée
        de la réponse, et seulement s'il est plus récent que le dernier appliqué.

        Returns:
            bool: True si le snapshot a été remplacé
        """
        generation = self._generation
        self._issued += 1
        sequence = self._issued

        try:
            data = await self.http.get_json(DASHBOARD_STATS_PATH)
            snapshot = TelemetrySnapshot.model_validate(data)
        except (BackendError, ValidationError) as e:
            if not self._is_current(generation):
                return False
            logger.warning(f"Dashboard poll failed: {e}")
            self.notifier.error("Failed to fetch dashboard data")
            return False

        if not self._is_current(generation):
            logger.debug("Discarding dashboard response received after stop()")
            return False

        if sequence < self._applied:
            # Un tick plus récent a déjà été appliqué
            logger.debug(f"Discarding out-of-order dashboard response #{sequence}")
            return False

        self._applied = sequence
        self.latest_snapshot = snapshot
        logger.debug(f"Dashboard snapshot updated: load={snapshot.load.percentage}%, "
                     f"sessions={len(snapshot.live_sessions)}")

        for listener in self.listeners:
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"Telemetry listener failed: {e}", exc_info=True)

        return True
