"""Taxonomie d'erreurs du store de versions de channels.

Ce module fournit les erreurs typées du domaine avec une enveloppe standardisée (code, message,
trace_id, details) pour que la couche appelante puisse les relayer telles quelles.

- Les erreurs typées (validation, not found, dépendance, autorisation) sont relayées verbatim.
- Toute autre erreur est journalisée puis remplacée par une `QueryError` opaque.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ErrorEnvelope:
    """Enveloppe d'erreur standard exposée aux appelants."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Sérialise l'enveloppe (details omis s'ils sont vides)."""
        return {
            "code": self.code,
            "message": self.message,
            "trace_id": self.trace_id,
            **({"details": self.details} if self.details else {}),
        }


class ErrorCodes:
    """Codes d'erreur standard."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DEPENDENCY_ERROR = "DEPENDENCY_ERROR"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ChannelStoreError(Exception):
    """Erreur de base du domaine avec enveloppe standard."""

    code = ErrorCodes.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        trace_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialise l'erreur avec un message et des détails optionnels."""
        super().__init__(message)
        self.message = message
        self.trace_id = trace_id
        self.details = details

    def envelope(self) -> ErrorEnvelope:
        """Retourne l'enveloppe standard de l'erreur."""
        return ErrorEnvelope(
            code=self.code,
            message=self.message,
            trace_id=self.trace_id,
            details=self.details,
        )


class ValidationError(ChannelStoreError):
    """Entrée invalide, doublon, quota dépassé, contenu trop gros ou manifeste invalide."""

    code = ErrorCodes.VALIDATION_ERROR


class NotFoundError(ChannelStoreError):
    """Entité absente (organization, channel, version, deployable_version)."""

    code = ErrorCodes.NOT_FOUND

    def __init__(self, entity: str, message: str, trace_id: str | None = None) -> None:
        super().__init__(message, trace_id=trace_id, details={"entity": entity})
        self.entity = entity


class DependencyError(ValidationError):
    """Des subscriptions bloquent la suppression (aucun état modifié)."""

    code = ErrorCodes.DEPENDENCY_ERROR

    def __init__(self, count: int, message: str, trace_id: str | None = None) -> None:
        super().__init__(message, trace_id=trace_id, details={"count": count})
        self.count = count


class AuthorizationError(ChannelStoreError):
    """L'acteur ne possède pas la capacité requise."""

    code = ErrorCodes.FORBIDDEN


class QueryError(ChannelStoreError):
    """Échec générique opaque: les détails internes ne sortent jamais."""

    code = ErrorCodes.INTERNAL_ERROR


class BackendUnavailableError(Exception):
    """Backend de stockage requis par un enregistrement mais non configuré."""
