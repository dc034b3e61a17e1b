"""
Tests pour les backends de stockage (inline et object store).

Vérifie la forme des payloads, la clé d'objet déterministe, l'idempotence de la création de
bucket et le découpage des locators.
"""

from __future__ import annotations

import pytest

from channelstore.domain.channel import (
    InlinePayload,
    Location,
    ObjectStorePayload,
)
from channelstore.infra.crypto.content_cipher import ContentCipher
from channelstore.infra.storage.base import PayloadRef
from channelstore.infra.storage.inline import InlineBackend
from channelstore.infra.storage.object_store import (
    ObjectStoreBackend,
    object_key,
    split_locator,
)
from fakes import FakeObjectStoreClient

REF = PayloadRef(org_id="Org-ABC", channel_uuid="c-123", version_name="V1")


def test_inline_backend_embeds_ciphertext() -> None:
    """Teste que le backend inline garde le chiffré dans le payload."""
    backend = InlineBackend()
    payload = backend.store(REF, b"\x01\x02")
    assert isinstance(payload, InlinePayload)
    assert payload.location is Location.INLINE
    assert backend.load(payload) == b"\x01\x02"
    backend.discard(payload)


def test_object_key_normalizes_org_only() -> None:
    """Teste la clé déterministe: org en minuscules, nom de version conservé."""
    assert object_key(REF) == "org-abc-c-123-V1"


def test_object_store_backend_stores_locator() -> None:
    """Teste que le payload object store est un locator et non des octets."""
    client = FakeObjectStoreClient()
    backend = ObjectStoreBackend(client, "channels")
    payload = backend.store(REF, b"cipher")
    assert isinstance(payload, ObjectStorePayload)
    assert payload.location is Location.OBJECT_STORE
    assert payload.locator.startswith("http://s3.local:9000/channels/")
    assert client.objects[("channels", "org-abc-c-123-V1")] == b"cipher"
    assert backend.load(payload) == b"cipher"
    backend.discard(payload)
    assert client.objects == {}


def test_ensure_bucket_twice_has_no_extra_effect() -> None:
    """Teste l'idempotence: deux écritures, un seul bucket créé."""
    client = FakeObjectStoreClient()
    backend = ObjectStoreBackend(client, "channels")
    backend.store(REF, b"a")
    backend.store(PayloadRef("Org-ABC", "c-123", "V2"), b"b")
    assert client.ensure_bucket_calls == 2
    assert client.create_bucket_calls == 1
    assert client.buckets == {"channels"}


@pytest.mark.parametrize(
    "locator, expected",
    [
        ("http://s3.local:9000/channels/org-c-v1", ("channels", "org-c-v1")),
        ("https://cos.example.com/b/a%2Fb%20c", ("b", "a/b c")),
    ],
)
def test_split_locator(locator: str, expected: tuple[str, str]) -> None:
    assert split_locator(locator) == expected


def test_split_locator_rejects_bucket_only() -> None:
    with pytest.raises(ValueError):
        split_locator("http://s3.local:9000/channels")


def test_round_trip_through_both_backends() -> None:
    """Teste l'aller-retour chiffrement + stockage pour chaque backend."""
    cipher = ContentCipher()
    text = b"kind: Namespace\nmetadata:\n  name: payments\n"
    for backend in (InlineBackend(), ObjectStoreBackend(FakeObjectStoreClient(), "b")):
        iv = cipher.new_iv()
        payload = backend.store(REF, cipher.encrypt(text, "key", iv))
        assert cipher.decrypt(backend.load(payload), "key", iv) == text


def test_backends_reject_foreign_payload() -> None:
    with pytest.raises(TypeError):
        InlineBackend().load(ObjectStorePayload(locator="http://x/b/k"))
    with pytest.raises(TypeError):
        ObjectStoreBackend(FakeObjectStoreClient(), "b").load(InlinePayload(ciphertext=b""))
