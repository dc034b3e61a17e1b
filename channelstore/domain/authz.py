"""
Passerelle d'autorisation pour les opérations sur les channels.

Ce module définit l'interface consommée par le store (`AuthorizationGateway.check`) et une
implémentation basée sur les entitlements portés par l'acteur.

Format d'un acteur (dict) :
- `id` / `email` : identité (journalisée via `who_is`).
- `org_id` : tenant de l'acteur.
- `entitlements` : liste de `"<type>:<action>"`, `"<type>:*"` ou `"*"`.
"""

from __future__ import annotations

from typing import Any, Protocol

from channelstore.core.constants import Actions, ResourceTypes
from channelstore.domain.errors import AuthorizationError


def who_is(actor: dict[str, Any] | None) -> str:
    """Retourne un libellé d'acteur sûr pour les logs."""
    if not actor:
        return "anonymous"
    return str(actor.get("email") or actor.get("id") or "anonymous")


class AuthorizationGateway(Protocol):
    """Protocole de la passerelle d'autorisation externe."""

    def check(
        self,
        actor: dict[str, Any],
        org_id: str,
        action: Actions,
        resource_type: ResourceTypes,
        context: str,
        resource: tuple[str, str] | None = None,
    ) -> None:
        """Autorise l'action ou lève AuthorizationError.

        Args:
            actor: Acteur à l'origine de l'opération.
            org_id: Tenant ciblé.
            action: Action demandée.
            resource_type: Type de ressource.
            context: Nom de l'opération appelante (audit).
            resource: (uuid, name) de la ressource, si connue.
        """


class EntitlementGateway:
    """Autorisation par entitlements de l'acteur, cloisonnée par tenant."""

    def check(
        self,
        actor: dict[str, Any],
        org_id: str,
        action: Actions,
        resource_type: ResourceTypes,
        context: str,
        resource: tuple[str, str] | None = None,
    ) -> None:
        if not actor or actor.get("org_id") != org_id:
            raise AuthorizationError(
                f"You are not allowed to {action.value} on {resource_type.value} "
                f"under organization {org_id} for the query {context}."
            )
        ents = set(actor.get("entitlements", []))
        wanted = {"*", f"{resource_type.value}:*", f"{resource_type.value}:{action.value}"}
        if ents.isdisjoint(wanted):
            raise AuthorizationError(
                f"You are not allowed to {action.value} on {resource_type.value} "
                f"under organization {org_id} for the query {context}.",
                details={"missing_entitlement": f"{resource_type.value}:{action.value}"},
            )
