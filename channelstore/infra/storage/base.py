"""Interface de base pour les backends de stockage des contenus chiffrés.

Ce module définit l'interface abstraite commune aux backends (inline, object store) et le
protocole du client object store consommé par le backend object store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol

from channelstore.domain.channel import Location, StoredPayload


class ObjectExistsError(Exception):
    """Un objet occupe déjà la clé visée (écriture conditionnelle refusée)."""

    def __init__(self, bucket: str, key: str) -> None:
        super().__init__(f"object already exists: {bucket}/{key}")
        self.bucket = bucket
        self.key = key


@dataclass(frozen=True)
class PayloadRef:
    """Identité d'un contenu à stocker (tenant, channel, nom de version)."""

    org_id: str
    channel_uuid: str
    version_name: str


class StorageBackend(ABC):
    """Interface abstraite d'un backend de stockage de chiffrés."""

    location: Location

    @abstractmethod
    def store(self, ref: PayloadRef, ciphertext: bytes) -> StoredPayload:
        """Persiste le chiffré et retourne le payload à enregistrer."""
        raise NotImplementedError

    @abstractmethod
    def load(self, payload: StoredPayload) -> bytes:
        """Retourne le chiffré correspondant au payload."""
        raise NotImplementedError

    @abstractmethod
    def discard(self, payload: StoredPayload) -> None:
        """Supprime le chiffré hors enregistrement, s'il y en a un."""
        raise NotImplementedError


class ObjectStoreClient(Protocol):
    """Protocole du client object store externe."""

    def ensure_bucket(self, bucket: str) -> None:
        """Crée le bucket s'il n'existe pas (idempotent)."""

    def put(self, bucket: str, key: str, data: bytes) -> str:
        """Téléverse `data` si la clé est libre et retourne le locator.

        Raises:
            ObjectExistsError: si un objet existe déjà sous cette clé.
        """

    def get(self, bucket: str, key: str) -> bytes:
        """Télécharge le contenu d'un objet."""

    def delete(self, bucket: str, key: str) -> None:
        """Supprime un objet."""
