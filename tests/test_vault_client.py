"""Tests pour le client Vault des identifiants S3 et le fallback environnement.

Ce module teste la lecture des identifiants depuis le mock Vault, le refus des clés inconnues et
l'ordre de résolution Vault → env → settings du container.
"""

# ============================================================
# Tests : tests/test_vault_client.py
# Objet  : Vault client lecture + fallback env via container.
# ============================================================

from __future__ import annotations

from typing import Any

import pytest

from channelstore.core.container import Container
from channelstore.core.settings import Settings
from channelstore.infra.secrets.vault_client import VaultClient


def test_vault_reads_mock_env(monkeypatch: Any) -> None:
    """Teste la lecture des identifiants S3 depuis l'environnement mock de Vault."""
    monkeypatch.setenv("VAULT_ENABLED", "true")
    monkeypatch.setenv("VAULT_MOCK_S3_ACCESS_KEY_ID", "ak-vault")
    monkeypatch.setenv("VAULT_MOCK_S3_SECRET_ACCESS_KEY", "secret-abc123")
    vc = VaultClient()
    assert vc.get_secret("S3_SECRET_ACCESS_KEY") == "secret-abc123"
    assert vc.s3_credentials() == ("ak-vault", "secret-abc123")


def test_vault_disabled_returns_empty(monkeypatch: Any) -> None:
    monkeypatch.setenv("VAULT_MOCK_S3_SECRET_ACCESS_KEY", "secret-abc123")
    assert VaultClient(enabled=False).get_secret("S3_SECRET_ACCESS_KEY") == ""


def test_vault_rejects_unknown_secret() -> None:
    with pytest.raises(ValueError):
        VaultClient(enabled=True).get_secret("OPENAI_API_KEY")


def test_container_prefers_vault_over_env(monkeypatch: Any) -> None:
    monkeypatch.setenv("VAULT_MOCK_S3_ACCESS_KEY_ID", "ak-vault")
    monkeypatch.setenv("S3_ACCESS_KEY_ID", "ak-env")
    container = Container(settings=Settings(VAULT_ENABLED=True, DATABASE_URL=None))
    assert container.resolve_secret("S3_ACCESS_KEY_ID") == "ak-vault"


def test_container_fallback_env_when_vault_disabled(monkeypatch: Any) -> None:
    """Teste le fallback vers l'environnement quand Vault est désactivé."""
    monkeypatch.setenv("S3_ACCESS_KEY_ID", "ak-env-xyz999")
    container = Container(settings=Settings(VAULT_ENABLED=False, DATABASE_URL=None))
    assert container.resolve_secret("S3_ACCESS_KEY_ID") == "ak-env-xyz999"
