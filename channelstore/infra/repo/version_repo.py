# ============================================================
# Module : channelstore/infra/repo/version_repo.py
# Objet  : Accès SQL (CRUD) pour les enregistrements de versions.
# Notes  : la colonne `location` pilote la reconstruction du payload.
# ============================================================

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...domain.channel import (
    ChannelVersion,
    InlinePayload,
    Location,
    ObjectStorePayload,
)
from .models import DeployableVersionORM


def _to_domain(row: DeployableVersionORM) -> ChannelVersion:
    location = Location(row.location)
    if location is Location.OBJECT_STORE:
        payload = ObjectStorePayload(locator=row.content_url or "")
    else:
        payload = InlinePayload(ciphertext=bytes(row.content_blob or b""))
    return ChannelVersion(
        uuid=row.uuid,
        org_id=row.org_id,
        channel_uuid=row.channel_uuid,
        channel_name=row.channel_name,
        name=row.name,
        description=row.description,
        type=row.type,
        payload=payload,
        iv=row.iv,
        owner_id=row.owner_id,
        created=(row.created_at.isoformat() if row.created_at else ""),
    )


class VersionRepo:
    """CRUD pour les enregistrements de versions (pas de mise à jour: immuables)."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def create(self, version: ChannelVersion) -> None:
        """Crée une ligne en base. Lève IntegrityError sur doublon unique.

        Contrainte d'unicité: (org_id, channel_uuid, name).
        """
        payload = version.payload
        row = DeployableVersionORM(
            uuid=version.uuid,
            org_id=version.org_id,
            channel_uuid=version.channel_uuid,
            channel_name=version.channel_name,
            name=version.name,
            description=version.description,
            type=version.type,
            location=version.location.value,
            content_blob=payload.ciphertext if isinstance(payload, InlinePayload) else None,
            content_url=payload.locator if isinstance(payload, ObjectStorePayload) else None,
            iv=version.iv,
            owner_id=version.owner_id,
        )
        if version.created:
            row.created_at = datetime.fromisoformat(version.created)
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise

    def get(self, org_id: str, uuid: str, channel_uuid: str | None = None) -> ChannelVersion | None:
        """Retourne l'enregistrement par uuid (optionnellement borné au channel)."""
        stmt = select(DeployableVersionORM).where(
            DeployableVersionORM.org_id == org_id, DeployableVersionORM.uuid == uuid
        )
        if channel_uuid is not None:
            stmt = stmt.where(DeployableVersionORM.channel_uuid == channel_uuid)
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row else None

    def name_exists(self, org_id: str, channel_uuid: str, name: str) -> bool:
        stmt = select(DeployableVersionORM.uuid).where(
            DeployableVersionORM.org_id == org_id,
            DeployableVersionORM.channel_uuid == channel_uuid,
            DeployableVersionORM.name == name,
        )
        return self._session.execute(stmt).first() is not None

    def count_for_channel(self, org_id: str, channel_uuid: str) -> int:
        stmt = (
            select(func.count())
            .select_from(DeployableVersionORM)
            .where(
                DeployableVersionORM.org_id == org_id,
                DeployableVersionORM.channel_uuid == channel_uuid,
            )
        )
        return int(self._session.execute(stmt).scalar_one())

    def list_for_channel(
        self, org_id: str, channel_uuid: str, location: Location | None = None
    ) -> list[ChannelVersion]:
        """Retourne les versions d'un channel (filtrables par location)."""
        stmt = select(DeployableVersionORM).where(
            DeployableVersionORM.org_id == org_id,
            DeployableVersionORM.channel_uuid == channel_uuid,
        )
        if location is not None:
            stmt = stmt.where(DeployableVersionORM.location == location.value)
        rows = self._session.execute(stmt).scalars().all()
        return [_to_domain(r) for r in rows]

    def list_all(self, org_id: str) -> list[ChannelVersion]:
        stmt = select(DeployableVersionORM).where(DeployableVersionORM.org_id == org_id)
        return [_to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def delete(self, org_id: str, uuid: str) -> bool:
        stmt = delete(DeployableVersionORM).where(
            DeployableVersionORM.org_id == org_id, DeployableVersionORM.uuid == uuid
        )
        result = self._session.execute(stmt)
        return bool(result.rowcount)

    def delete_for_channel(self, org_id: str, channel_uuid: str) -> int:
        """Supprime toutes les versions d'un channel et retourne leur nombre."""
        stmt = delete(DeployableVersionORM).where(
            DeployableVersionORM.org_id == org_id,
            DeployableVersionORM.channel_uuid == channel_uuid,
        )
        return int(self._session.execute(stmt).rowcount or 0)
