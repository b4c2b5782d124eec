from typing import Optional


class TerminalError(Exception):
    """Erreur de base du terminal GreenGrid"""

    user_message: str = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)


class IncompleteIdentifier(TerminalError):
    """Numéro de véhicule incomplet (validation locale, jamais envoyé)"""

    user_message = "Please enter a valid vehicle number"


class GridCapacityExceeded(TerminalError):
    """Le backend a répondu 503: capacité du réseau atteinte"""

    user_message = "Grid Capacity Reached. Please wait."


class ConnectionFailed(TerminalError):
    """Erreur de transport ou réponse inattendue du backend"""

    user_message = "Connection failed. Reconnecting to Grid..."


class InvalidCredentials(TerminalError):
    user_message = "Invalid credentials"


class Unauthenticated(TerminalError):
    """Aucun credential stocké: rediriger vers le login"""

    user_message = "Please sign in to view the dashboard"


class ControllerStateError(TerminalError):
    """Opération appelée dans un état qui ne l'autorise pas"""

    user_message = "Operation not allowed in the current state"


class BackendError(TerminalError):
    """
    Échec d'un appel HTTP

    status_code vaut None pour les erreurs de transport ou les corps illisibles.
    """

    user_message = "Backend request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
