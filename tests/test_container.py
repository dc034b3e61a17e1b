"""Tests pour les chemins de configuration du container.

Ce module vérifie le choix du backend d'écriture selon la configuration object store et la
transmission des limites au store.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import patch

from channelstore.core.container import Container
from channelstore.core.settings import Settings
from channelstore.domain.channel import Location


def test_container_inline_path(monkeypatch: Any) -> None:
    """Teste que le store écrit en inline sans object store configuré."""
    monkeypatch.delenv("S3_ENDPOINT", raising=False)
    c = Container(settings=Settings(S3_ENDPOINT=None, DATABASE_URL=None))
    assert c.object_store is None
    assert c.store.active_location is Location.INLINE


def test_container_object_store_path() -> None:
    """Teste que le store écrit dans l'object store quand S3_ENDPOINT est renseigné."""
    settings = Settings(
        S3_ENDPOINT="http://minio:9000",
        S3_CHANNEL_BUCKET="channels",
        DATABASE_URL=None,
        CHANNEL_VERSION_YAML_MAX_SIZE_LIMIT_MB=1,
        CASCADE_DELETE_CONCURRENCY=2,
    )
    with patch("channelstore.infra.storage.s3_client.boto3.client") as factory:
        c = Container(settings=settings)
    factory.assert_called_once()
    assert factory.call_args.kwargs["endpoint_url"] == "http://minio:9000"
    assert c.store.active_location is Location.OBJECT_STORE
    assert c.store._limits.max_content_bytes == 1024 * 1024
    assert c.store._limits.cascade_concurrency == 2
