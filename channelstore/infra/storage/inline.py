"""Backend inline: le chiffré est un champ de l'enregistrement de version."""

from __future__ import annotations

from channelstore.domain.channel import InlinePayload, Location, StoredPayload
from channelstore.infra.storage.base import PayloadRef, StorageBackend


class InlineBackend(StorageBackend):
    """Stocke le chiffré directement dans l'enregistrement."""

    location = Location.INLINE

    def store(self, ref: PayloadRef, ciphertext: bytes) -> StoredPayload:
        return InlinePayload(ciphertext=ciphertext)

    def load(self, payload: StoredPayload) -> bytes:
        if not isinstance(payload, InlinePayload):
            raise TypeError(f"inline backend cannot load {payload.location.value} payload")
        return payload.ciphertext

    def discard(self, payload: StoredPayload) -> None:
        # rien hors de l'enregistrement: sa suppression emporte le chiffré
        return None
