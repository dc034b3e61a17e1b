"""
Tests pour la résolution des variables d'environnement.

Ce module teste le chargement et la résolution des variables d'environnement à partir de fichiers
.env personnalisés dans les settings.
"""

from __future__ import annotations

import importlib
from pathlib import Path


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """
    Teste que les settings lisent correctement les fichiers d'environnement.

    Vérifie que les limites et la configuration object store définies dans un fichier .env
    personnalisé sont chargées et appliquées aux settings.
    """
    env = tmp_path / ".env.custom"
    env.write_text(
        "CHANNEL_VERSION_YAML_MAX_SIZE_LIMIT_MB=0.5\nCHANNEL_VERSION_MAX_TOTAL=7\n"
        "S3_ENDPOINT=http://minio:9000\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ENV_FILE", str(env))

    # Reload settings module to pick up new ENV_FILE
    settings_mod = importlib.import_module("channelstore.core.settings")
    importlib.reload(settings_mod)
    s = settings_mod.get_settings()

    assert s.CHANNEL_VERSION_MAX_TOTAL == 7
    assert s.channel_version_max_bytes == 512 * 1024
    assert s.object_store_enabled is True
    assert s.S3_CHANNEL_BUCKET == "razee"


def test_settings_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.delenv("S3_ENDPOINT", raising=False)
    settings_mod = importlib.import_module("channelstore.core.settings")
    importlib.reload(settings_mod)
    s = settings_mod.get_settings()
    assert s.object_store_enabled is False
    assert s.channel_version_max_bytes == 3 * 1024 * 1024
    assert s.CHANNEL_MAX_TOTAL == 1000
