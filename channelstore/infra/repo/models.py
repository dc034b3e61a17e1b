"""SQLAlchemy models for persistence layer (organizations, channels, versions, subscriptions)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    LargeBinary,
    MetaData,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


class OrganizationORM(Base):
    """Modèle ORM des organisations (tenants) et de leurs clés."""

    __tablename__ = "organizations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    org_keys = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class ChannelORM(Base):
    """Modèle ORM des channels; `versions` est l'index dénormalisé des versions."""

    __tablename__ = "channels"

    uuid = Column(String(36), primary_key=True)
    org_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    versions = Column(JSON, nullable=False, default=list)
    owner_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (UniqueConstraint("org_id", "name", name="uq_channel_org_name"),)


class DeployableVersionORM(Base):
    """Modèle ORM des versions (source de vérité, immuable)."""

    __tablename__ = "deployable_versions"

    uuid = Column(String(36), primary_key=True)
    org_id = Column(String(64), nullable=False)
    channel_uuid = Column(String(36), nullable=False)
    channel_name = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(64), nullable=False)
    location = Column(String(32), nullable=False)
    content_blob = Column(LargeBinary, nullable=True)
    content_url = Column(Text, nullable=True)
    iv = Column(String(64), nullable=False)
    owner_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("org_id", "channel_uuid", "name", name="uq_version_org_channel_name"),
        Index("ix_version_org_channel", "org_id", "channel_uuid"),
    )


class SubscriptionORM(Base):
    """Modèle ORM des subscriptions (entité externe, lue pour les dépendances)."""

    __tablename__ = "subscriptions"

    uuid = Column(String(36), primary_key=True)
    org_id = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    channel_uuid = Column(String(36), nullable=True)
    channel_name = Column(String(255), nullable=True)
    version_uuid = Column(String(36), nullable=True)

    __table_args__ = (Index("ix_subscription_org_channel", "org_id", "channel_uuid"),)
