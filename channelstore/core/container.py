"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, moteur SQL, passerelle d'autorisation, clés,
backends de stockage, store) et expose `get_container()` pour le reste de l'application.
"""

import os

from channelstore.core.logging import setup_logging
from channelstore.core.settings import Settings, get_settings
from channelstore.domain.authz import AuthorizationGateway, EntitlementGateway
from channelstore.infra.crypto.content_cipher import ContentCipher
from channelstore.infra.repo.db import get_engine
from channelstore.infra.repo.models import Base
from channelstore.infra.secrets.key_manager import OrgKeyManager
from channelstore.infra.secrets.vault_client import VaultClient
from channelstore.infra.storage.object_store import ObjectStoreBackend
from channelstore.infra.storage.s3_client import S3ObjectStoreClient
from channelstore.services.channel_version_store import ChannelVersionStore, StoreLimits


class Container:
    def __init__(
        self,
        settings: Settings | None = None,
        gateway: AuthorizationGateway | None = None,
    ):
        self.settings = settings or get_settings()
        setup_logging(self.settings.LOG_LEVEL, json_logs=self.settings.APP_ENV != "dev")
        # Secrets/Vault
        self.vault = VaultClient(enabled=self.settings.VAULT_ENABLED)
        self.engine = get_engine(self.settings.DATABASE_URL)
        if not self.settings.DATABASE_URL:
            # base mémoire: pas de migration Alembic, schéma créé à la volée
            Base.metadata.create_all(self.engine)
        self.gateway = gateway or EntitlementGateway()
        self.key_manager = OrgKeyManager(self.engine)

        self.object_store = None
        if self.settings.object_store_enabled:
            client = S3ObjectStoreClient(
                endpoint=self.settings.S3_ENDPOINT or "",
                access_key_id=self.resolve_secret("S3_ACCESS_KEY_ID") or None,
                secret_access_key=self.resolve_secret("S3_SECRET_ACCESS_KEY") or None,
                location_constraint=self.settings.S3_LOCATION_CONSTRAINT,
            )
            self.object_store = ObjectStoreBackend(client, self.settings.S3_CHANNEL_BUCKET)

        self.store = ChannelVersionStore(
            engine=self.engine,
            gateway=self.gateway,
            key_manager=self.key_manager,
            cipher=ContentCipher(),
            object_store=self.object_store,
            limits=StoreLimits(
                max_channels=self.settings.CHANNEL_MAX_TOTAL,
                max_versions=self.settings.CHANNEL_VERSION_MAX_TOTAL,
                max_content_bytes=self.settings.channel_version_max_bytes,
                cascade_concurrency=self.settings.CASCADE_DELETE_CONCURRENCY,
            ),
        )

    def resolve_secret(self, key: str) -> str:
        """Instance-level secret resolution: Vault → env → settings.

        Ne journalise jamais la valeur du secret.
        """
        if self.vault.enabled:
            val = self.vault.get_secret(key)
            if val:
                return val
        env_val = os.getenv(key)
        if env_val:
            return env_val
        return getattr(self.settings, key, "") or ""


_container: Container | None = None


def get_container() -> Container:
    """Retourne le conteneur applicatif (construit au premier appel)."""
    global _container
    if _container is None:
        _container = Container()
    return _container
