"""
Client Vault des identifiants de l'object store.

Le store ne lit dans Vault que les identifiants S3 (`S3_ACCESS_KEY_ID`, `S3_SECRET_ACCESS_KEY`).
En tests et en développement, `VAULT_MOCK_<KEY>` tient lieu de Vault.
"""

# ============================================================
# Module : channelstore/infra/secrets/vault_client.py
# Objet  : Résolution des identifiants S3 depuis Vault (ou son mock).
# Invariants :
#  - seules les clés de S3_SECRET_KEYS sont demandées.
#  - aucune valeur de secret n'est journalisée.
# ============================================================

from __future__ import annotations

import os

import structlog

S3_SECRET_KEYS = frozenset({"S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"})


class VaultClient:
    """Lecture des identifiants S3; chaîne vide quand Vault ne les fournit pas."""

    def __init__(self, enabled: bool | None = None) -> None:
        if enabled is None:
            env_val = (os.getenv("VAULT_ENABLED") or "").strip().lower()
            self._enabled = env_val in {"1", "true", "yes"}
        else:
            self._enabled = bool(enabled)
        self._log = structlog.get_logger(__name__).bind(component="vault_client")

    @property
    def enabled(self) -> bool:
        return self._enabled

    def get_secret(self, key: str) -> str:
        """Retourne l'identifiant S3 `key`, ou "" si Vault est désactivé ou muet.

        Raises:
            ValueError: si `key` n'est pas un identifiant S3 connu.
        """
        if key not in S3_SECRET_KEYS:
            raise ValueError(f"unsupported vault secret: {key}")
        if not self._enabled:
            return ""
        value = os.getenv(f"VAULT_MOCK_{key}", "")
        if not value:
            self._log.debug("vault_secret_missing", key=key)
        return value

    def s3_credentials(self) -> tuple[str, str]:
        """Retourne (access_key_id, secret_access_key) tels que fournis par Vault."""
        return self.get_secret("S3_ACCESS_KEY_ID"), self.get_secret("S3_SECRET_ACCESS_KEY")
