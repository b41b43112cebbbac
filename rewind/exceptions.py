"""Erreurs du moteur d'annulation / Undo engine errors.

Chaque erreur porte le code HTTP sous lequel elle est exposee.
Each error carries the HTTP status it is surfaced as.
"""


class RewindError(Exception):
    """Racine de toutes les erreurs / Root of every error raised by the engine."""

    status_code = 500

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(RewindError):
    """Entree corrigeable par l'appelant / Caller-correctable input.

    Malformed id, unsupported operation, empty or unparsable snapshot.
    """

    status_code = 400


class NotFoundError(RewindError):
    """Entree ou enregistrement cible absent / Missing change entry or target record."""

    status_code = 404


class ConflictError(RewindError):
    """Deja annule ou expire / Already consumed or expired."""

    status_code = 409


class PersistenceError(RewindError):
    """Echec du stockage, jamais rejoue / Storage failure, never retried."""

    status_code = 500
