"""
Gestionnaire de clés d'organisation.

Résout la clé courante d'un tenant: la première de sa liste ordonnée `org_keys`. Aucune référence
de clé n'est conservée par version; après rotation, seule la clé courante est utilisée.
"""

# ============================================================
# Module : channelstore/infra/secrets/key_manager.py
# Objet  : Résolution de la clé courante d'une organisation.
# ============================================================

from __future__ import annotations

from typing import Protocol

from sqlalchemy.engine import Engine

from channelstore.domain.errors import NotFoundError
from channelstore.infra.repo.db import session_scope
from channelstore.infra.repo.organization_repo import OrganizationRepo


class KeyManager(Protocol):
    """Protocole du gestionnaire de clés externe."""

    def current_key(self, org_id: str) -> str:
        """Retourne la clé courante du tenant ou lève NotFoundError."""


class OrgKeyManager:
    """Lit les clés depuis l'enregistrement de l'organisation.

    - Ne journalise jamais de valeurs de clés.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def current_key(self, org_id: str) -> str:
        with session_scope(self._engine) as session:
            org = OrganizationRepo(session).get(org_id)
        if org is None:
            raise NotFoundError(
                "organization", f"Could not find the organization with ID {org_id}."
            )
        if not org.org_keys:
            raise NotFoundError("org_key", f"No encryption key registered for {org_id}.")
        return org.org_keys[0]
