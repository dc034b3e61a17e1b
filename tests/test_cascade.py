# ============================================================
# Tests : tests/test_cascade.py
# Objet  : Fan-out borné et suppression en cascade d'un channel.
# ============================================================
"""
Tests pour la suppression en cascade.

Vérifie la borne de concurrence du fan-out, l'arrêt à la première erreur et l'absence de
suppression des enregistrements quand un payload distant n'a pas pu être supprimé.
"""

from __future__ import annotations

import threading
import time

import pytest

from channelstore.domain.errors import QueryError
from channelstore.infra.repo.db import session_scope
from channelstore.infra.repo.version_repo import VersionRepo
from channelstore.services.cascade import bounded_fan_out
from conftest import ORG_ID


def test_fan_out_respects_bound() -> None:
    """Teste qu'au plus `max_workers` appels sont en vol simultanément."""
    lock = threading.Lock()
    state = {"now": 0, "max": 0}

    def work(_item: int) -> None:
        with lock:
            state["now"] += 1
            state["max"] = max(state["max"], state["now"])
        time.sleep(0.01)
        with lock:
            state["now"] -= 1

    assert bounded_fan_out(range(20), work, max_workers=3) == 20
    assert 1 <= state["max"] <= 3


def test_fan_out_empty_and_invalid_bound() -> None:
    assert bounded_fan_out([], lambda _: None) == 0
    with pytest.raises(ValueError):
        bounded_fan_out([1], lambda _: None, max_workers=0)


def test_fan_out_propagates_first_error() -> None:
    """Teste que l'erreur d'un appel est relayée telle quelle."""

    def work(item: int) -> None:
        if item == 2:
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        bounded_fan_out([1, 2, 3], work, max_workers=1)


def _channel_with_versions(store, admin, count: int) -> str:
    channel_uuid = store.add_channel(ORG_ID, "payments", admin)
    for i in range(count):
        store.add_version(
            ORG_ID, channel_uuid, f"v{i}", "application/yaml", admin, content=f"n: {i}\n"
        )
    return channel_uuid


def test_remove_channel_deletes_remote_payloads(engine, make_store, admin, object_client) -> None:
    """Teste la cascade complète: payloads distants (concurrence <= 5), enregistrements, channel."""
    store = make_store(remote=True)
    channel_uuid = _channel_with_versions(store, admin, 12)
    object_client.delete_delay = 0.02

    store.remove_channel(ORG_ID, channel_uuid, admin)

    assert object_client.objects == {}
    assert len(object_client.deleted) == 12
    assert object_client.max_in_flight <= 5
    with session_scope(engine) as s:
        assert VersionRepo(s).count_for_channel(ORG_ID, channel_uuid) == 0


def test_remove_channel_aborts_on_first_failure(engine, make_store, admin, object_client) -> None:
    """Teste qu'une suppression distante en échec laisse enregistrements et channel en place."""
    store = make_store(remote=True)
    channel_uuid = _channel_with_versions(store, admin, 6)
    object_client.fail_delete_keys = {f"org-1-{channel_uuid}-v0"}

    with pytest.raises(QueryError):
        store.remove_channel(ORG_ID, channel_uuid, admin, req_id="req-7")

    with session_scope(engine) as s:
        assert VersionRepo(s).count_for_channel(ORG_ID, channel_uuid) == 6
    assert len(store.get_channel(ORG_ID, channel_uuid, admin).versions) == 6
