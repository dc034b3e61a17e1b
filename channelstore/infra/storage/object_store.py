# ============================================================
# Module : channelstore/infra/storage/object_store.py
# Objet  : Backend object store (bucket + locator dans l'enregistrement).
# Invariants :
#  - ensure_bucket est appelé à chaque écriture (idempotent).
#  - la clé d'objet est déterministe: "{org_id.lower()}-{channel_uuid}-{version_name}".
#  - lecture/suppression n'utilisent que le locator stocké.
# ============================================================
"""Backend object store pour les contenus chiffrés des versions."""

from __future__ import annotations

from urllib.parse import unquote, urlparse

import structlog

from channelstore.domain.channel import Location, ObjectStorePayload, StoredPayload
from channelstore.infra.storage.base import ObjectStoreClient, PayloadRef, StorageBackend


def object_key(ref: PayloadRef) -> str:
    """Clé d'objet d'une version (seul l'org id est normalisé en minuscules)."""
    return f"{ref.org_id.lower()}-{ref.channel_uuid}-{ref.version_name}"


def split_locator(locator: str) -> tuple[str, str]:
    """Découpe un locator `{endpoint}/{bucket}/{key}` en (bucket, key).

    Raises:
        ValueError: si le locator ne contient pas de bucket et de clé.
    """
    parts = [p for p in urlparse(locator).path.split("/") if p]
    if len(parts) < 2:
        raise ValueError(f"invalid object locator: {locator!r}")
    bucket = parts[0]
    key = unquote("/".join(parts[1:]))
    return bucket, key


class ObjectStoreBackend(StorageBackend):
    """Stocke le chiffré dans un bucket et retourne le locator comme contenu."""

    location = Location.OBJECT_STORE

    def __init__(self, client: ObjectStoreClient, bucket: str) -> None:
        self._client = client
        self.bucket = bucket
        self._log = structlog.get_logger(__name__).bind(
            component="object_store_backend", bucket=bucket
        )

    def store(self, ref: PayloadRef, ciphertext: bytes) -> StoredPayload:
        self._client.ensure_bucket(self.bucket)
        key = object_key(ref)
        locator = self._client.put(self.bucket, key, ciphertext)
        self._log.debug("object_stored", key=key, size=len(ciphertext))
        return ObjectStorePayload(locator=locator)

    def load(self, payload: StoredPayload) -> bytes:
        if not isinstance(payload, ObjectStorePayload):
            raise TypeError(f"object store backend cannot load {payload.location.value} payload")
        bucket, key = split_locator(payload.locator)
        return self._client.get(bucket, key)

    def discard(self, payload: StoredPayload) -> None:
        if not isinstance(payload, ObjectStorePayload):
            raise TypeError(
                f"object store backend cannot discard {payload.location.value} payload"
            )
        bucket, key = split_locator(payload.locator)
        self._client.delete(bucket, key)
        self._log.debug("object_deleted", key=key)
