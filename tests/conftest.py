"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `channelstore` en ajoutant la racine du projet
au sys.path, et fournit une base SQLite en mémoire, une organisation amorcée et des fabriques de
store.
"""

import os
import sys
from collections.abc import Callable

import pytest

# Ensure project root is on sys.path so that
# imports like `from channelstore...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from channelstore.domain.authz import EntitlementGateway  # noqa: E402
from channelstore.domain.channel import Organization  # noqa: E402
from channelstore.infra.repo.db import get_engine, session_scope  # noqa: E402
from channelstore.infra.repo.models import Base  # noqa: E402
from channelstore.infra.repo.organization_repo import OrganizationRepo  # noqa: E402
from channelstore.infra.secrets.key_manager import OrgKeyManager  # noqa: E402
from channelstore.infra.storage.object_store import ObjectStoreBackend  # noqa: E402
from channelstore.services.channel_version_store import (  # noqa: E402
    ChannelVersionStore,
    StoreLimits,
)
from fakes import FakeObjectStoreClient  # noqa: E402

ORG_ID = "Org-1"
ORG_KEY = "orgkey-current-0001"
BUCKET = "channels"


@pytest.fixture
def engine():
    """Moteur SQLite mémoire partagé, schéma créé."""
    eng = get_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(eng)
    with session_scope(eng) as session:
        OrganizationRepo(session).create(
            Organization(id=ORG_ID, name="org one", org_keys=[ORG_KEY, "orgkey-old"])
        )
    yield eng
    eng.dispose()


@pytest.fixture
def admin() -> dict:
    """Acteur disposant de tous les droits sur les channels de l'organisation."""
    return {"id": "u-admin", "email": "admin@example.com", "org_id": ORG_ID, "entitlements": ["*"]}


@pytest.fixture
def reader() -> dict:
    """Acteur en lecture seule."""
    return {
        "id": "u-reader",
        "email": "reader@example.com",
        "org_id": ORG_ID,
        "entitlements": ["channel:read"],
    }


@pytest.fixture
def object_client() -> FakeObjectStoreClient:
    return FakeObjectStoreClient()


@pytest.fixture
def make_store(engine, object_client) -> Callable[..., ChannelVersionStore]:
    """Fabrique de store: inline par défaut, object store si `remote=True`."""

    def _make(remote: bool = False, **limits) -> ChannelVersionStore:
        return ChannelVersionStore(
            engine=engine,
            gateway=EntitlementGateway(),
            key_manager=OrgKeyManager(engine),
            object_store=ObjectStoreBackend(object_client, BUCKET) if remote else None,
            limits=StoreLimits(**limits),
        )

    return _make


@pytest.fixture
def store(make_store) -> ChannelVersionStore:
    return make_store()
