"""
Modèles de domaine des channels et de leurs versions (POPO).

Ce module définit les objets manipulés par le store: organisation, channel, résumé de version
(index dénormalisé porté par le channel) et enregistrement de version (source de vérité).
"""

# ============================================================
# Module : channelstore/domain/channel.py
# Objet  : Channel, VersionSummary, ChannelVersion, payload stocké.
# Invariants :
#  - chaque VersionSummary correspond à un ChannelVersion (uuid, name, location).
#  - la location d'une version est fixée à la création.
# ============================================================

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Location(str, Enum):
    """Backend de stockage d'une version, fixé à la création."""

    INLINE = "inline"
    OBJECT_STORE = "object-store"


@dataclass(frozen=True)
class InlinePayload:
    """Chiffré embarqué dans l'enregistrement de version."""

    ciphertext: bytes

    @property
    def location(self) -> Location:
        return Location.INLINE


@dataclass(frozen=True)
class ObjectStorePayload:
    """Chiffré stocké dans un bucket; l'enregistrement ne garde que le locator."""

    locator: str

    @property
    def location(self) -> Location:
        return Location.OBJECT_STORE


StoredPayload = InlinePayload | ObjectStorePayload


@dataclass
class Organization:
    """Tenant et sa liste ordonnée de clés (la première est la clé courante)."""

    id: str
    name: str
    org_keys: list[str] = field(default_factory=list)


@dataclass
class VersionSummary:
    """Entrée d'index dénormalisée d'une version dans son channel."""

    uuid: str
    name: str
    description: str | None
    location: Location
    created: str

    def to_dict(self) -> dict[str, Any]:
        """Forme JSON stockée dans la colonne `versions` du channel."""
        return {
            "uuid": self.uuid,
            "name": self.name,
            "description": self.description,
            "location": self.location.value,
            "created": self.created,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> VersionSummary:
        return cls(
            uuid=raw["uuid"],
            name=raw["name"],
            description=raw.get("description"),
            location=Location(raw["location"]),
            created=raw.get("created", ""),
        )


@dataclass
class Channel:
    """
    Channel d'un tenant (objet domaine).

    Attributs
    - uuid: identifiant stable exposé.
    - org_id: tenant propriétaire.
    - name: nom unique dans le tenant.
    - tags: étiquettes libres.
    - versions: résumés de versions, dans l'ordre de création.
    - owner_id: créateur.
    - created: ISO datetime de création.
    """

    uuid: str
    org_id: str
    name: str
    tags: list[str] = field(default_factory=list)
    versions: list[VersionSummary] = field(default_factory=list)
    owner_id: str | None = None
    created: str = ""

    def find_version(
        self, version_uuid: str | None = None, version_name: str | None = None
    ) -> VersionSummary | None:
        """Retourne le résumé correspondant à l'uuid ou au nom, s'il existe."""
        for summary in self.versions:
            if version_uuid is not None and summary.uuid == version_uuid:
                return summary
            if version_name is not None and summary.name == version_name:
                return summary
        return None


@dataclass
class ChannelVersion:
    """
    Enregistrement de version (source de vérité, immuable).

    `payload` porte le chiffré (inline) ou le locator (object store). `content` n'est rempli
    qu'en lecture, avec le texte déchiffré.
    """

    uuid: str
    org_id: str
    channel_uuid: str
    channel_name: str
    name: str
    description: str | None
    type: str
    payload: StoredPayload
    iv: str
    owner_id: str | None = None
    created: str = ""
    content: str | None = None

    @property
    def location(self) -> Location:
        return self.payload.location

    def summary(self) -> VersionSummary:
        """Construit l'entrée d'index correspondant à cet enregistrement."""
        return VersionSummary(
            uuid=self.uuid,
            name=self.name,
            description=self.description,
            location=self.location,
            created=self.created,
        )
