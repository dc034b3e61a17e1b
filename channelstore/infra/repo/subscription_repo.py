"""Accès SQL aux subscriptions (entité externe référençant channels et versions).

Le store ne fait que compter les subscriptions bloquantes et propager le renommage d'un channel
dans leur champ dénormalisé `channel_name`.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from .models import SubscriptionORM


class SubscriptionRepo:
    """Requêtes de dépendance sur les subscriptions."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def count_for_channel(self, org_id: str, channel_uuid: str) -> int:
        stmt = (
            select(func.count())
            .select_from(SubscriptionORM)
            .where(SubscriptionORM.org_id == org_id, SubscriptionORM.channel_uuid == channel_uuid)
        )
        return int(self._session.execute(stmt).scalar_one())

    def count_for_version(self, org_id: str, version_uuid: str) -> int:
        stmt = (
            select(func.count())
            .select_from(SubscriptionORM)
            .where(SubscriptionORM.org_id == org_id, SubscriptionORM.version_uuid == version_uuid)
        )
        return int(self._session.execute(stmt).scalar_one())

    def rename_channel(self, org_id: str, channel_uuid: str, channel_name: str) -> int:
        """Met à jour `channel_name` des subscriptions du channel; retourne le nombre touché."""
        stmt = (
            update(SubscriptionORM)
            .where(SubscriptionORM.org_id == org_id, SubscriptionORM.channel_uuid == channel_uuid)
            .values(channel_name=channel_name)
        )
        return int(self._session.execute(stmt).rowcount or 0)

    def create(
        self,
        uuid: str,
        org_id: str,
        name: str,
        channel_uuid: str | None = None,
        channel_name: str | None = None,
        version_uuid: str | None = None,
    ) -> None:
        self._session.add(
            SubscriptionORM(
                uuid=uuid,
                org_id=org_id,
                name=name,
                channel_uuid=channel_uuid,
                channel_name=channel_name,
                version_uuid=version_uuid,
            )
        )
        self._session.flush()
