"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "channelstore"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str | None = None

    # Object store: actif si S3_ENDPOINT est renseigné
    S3_ENDPOINT: str | None = None
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_LOCATION_CONSTRAINT: str = "us-standard"
    S3_CHANNEL_BUCKET: str = "razee"

    # Limites des channels / versions
    CHANNEL_VERSION_YAML_MAX_SIZE_LIMIT_MB: float = 3
    CHANNEL_MAX_TOTAL: int = 1000
    CHANNEL_VERSION_MAX_TOTAL: int = 1000
    CASCADE_DELETE_CONCURRENCY: int = 5

    # Vault/Sécurité
    VAULT_ENABLED: bool = False

    @property
    def object_store_enabled(self) -> bool:
        """Indique si le backend object store est configuré."""
        return bool(self.S3_ENDPOINT)

    @property
    def channel_version_max_bytes(self) -> int:
        """Taille maximale (octets) d'un contenu de version."""
        return int(self.CHANNEL_VERSION_YAML_MAX_SIZE_LIMIT_MB * 1024 * 1024)


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
