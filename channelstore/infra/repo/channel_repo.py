# ============================================================
# Module : channelstore/infra/repo/channel_repo.py
# Objet  : Accès SQL (CRUD) pour Channel et son index de versions.
# Invariants :
#  - l'index `versions` est réécrit en lecture-modification-écriture
#    sur la ligne verrouillée (FOR UPDATE si le moteur le supporte).
#  - l'ordre relatif des résumés restants est préservé.
# ============================================================

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...domain.channel import Channel, VersionSummary
from .models import ChannelORM


def _to_domain(row: ChannelORM) -> Channel:
    return Channel(
        uuid=row.uuid,
        org_id=row.org_id,
        name=row.name,
        tags=list(row.tags or []),
        versions=[VersionSummary.from_dict(v) for v in (row.versions or [])],
        owner_id=row.owner_id,
        created=(row.created_at.isoformat() if row.created_at else ""),
    )


class ChannelRepo:
    """CRUD pour Channel, index de versions compris."""

    def __init__(self, session: Session) -> None:
        """Construit le repo avec une session (SQLAlchemy)."""
        self._session = session

    def create(self, channel: Channel) -> None:
        """Crée une ligne en base. Lève IntegrityError sur doublon unique.

        Contrainte d'unicité: (org_id, name).
        """
        row = ChannelORM(
            uuid=channel.uuid,
            org_id=channel.org_id,
            name=channel.name,
            tags=list(channel.tags),
            versions=[v.to_dict() for v in channel.versions],
            owner_id=channel.owner_id,
        )
        if channel.created:
            row.created_at = datetime.fromisoformat(channel.created)
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise

    def _row(self, org_id: str, uuid: str, lock: bool = False) -> ChannelORM | None:
        stmt = select(ChannelORM).where(ChannelORM.org_id == org_id, ChannelORM.uuid == uuid)
        if lock:
            stmt = stmt.with_for_update()
        return self._session.execute(stmt).scalars().first()

    def get(self, org_id: str, uuid: str) -> Channel | None:
        """Retourne le channel par uuid, ou None."""
        row = self._row(org_id, uuid)
        return _to_domain(row) if row else None

    def get_by_name(self, org_id: str, name: str) -> Channel | None:
        """Retourne le channel par nom (unique dans le tenant), ou None."""
        stmt = select(ChannelORM).where(ChannelORM.org_id == org_id, ChannelORM.name == name)
        row = self._session.execute(stmt).scalars().first()
        return _to_domain(row) if row else None

    def list_all(self, org_id: str) -> list[Channel]:
        """Retourne les channels du tenant, par date de création."""
        stmt = (
            select(ChannelORM)
            .where(ChannelORM.org_id == org_id)
            .order_by(ChannelORM.created_at, ChannelORM.name)
        )
        return [_to_domain(r) for r in self._session.execute(stmt).scalars().all()]

    def count(self, org_id: str) -> int:
        stmt = select(func.count()).select_from(ChannelORM).where(ChannelORM.org_id == org_id)
        return int(self._session.execute(stmt).scalar_one())

    def update(self, org_id: str, uuid: str, name: str, tags: list[str]) -> bool:
        """Renomme/re-tague un channel. Lève IntegrityError si le nom est pris."""
        row = self._row(org_id, uuid, lock=True)
        if not row:
            return False
        row.name = name
        row.tags = list(tags)
        try:
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise
        return True

    def append_summary(self, org_id: str, uuid: str, summary: VersionSummary) -> bool:
        """Ajoute un résumé en fin d'index. Retourne False si le channel a disparu."""
        row = self._row(org_id, uuid, lock=True)
        if not row:
            return False
        # nouvelle liste: la colonne JSON n'est pas suivie en mutation sur place
        row.versions = [*(row.versions or []), summary.to_dict()]
        self._session.flush()
        return True

    def remove_summary(self, org_id: str, uuid: str, version_uuid: str) -> bool:
        """Retire le résumé `version_uuid`. Retourne False s'il n'était pas indexé."""
        row = self._row(org_id, uuid, lock=True)
        if not row:
            return False
        current = list(row.versions or [])
        kept = [v for v in current if v.get("uuid") != version_uuid]
        if len(kept) == len(current):
            return False
        row.versions = kept
        self._session.flush()
        return True

    def delete(self, org_id: str, uuid: str) -> bool:
        row = self._row(org_id, uuid)
        if not row:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def indexed_version_uuids(self, org_id: str) -> set[str]:
        """Retourne l'ensemble des uuids de versions référencés par un index."""
        stmt = select(ChannelORM.versions).where(ChannelORM.org_id == org_id)
        found: set[str] = set()
        for versions in self._session.execute(stmt).scalars().all():
            found.update(v["uuid"] for v in (versions or []))
        return found
