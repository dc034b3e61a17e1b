# ============================================================
# Module : channelstore/services/channel_version_store.py
# Objet  : Orchestration des channels et de leurs versions chiffrées.
# Contexte : deux collections maintenues cohérentes sans transaction commune:
#            enregistrements de versions (source de vérité) et index `versions`
#            dénormalisé dans chaque channel.
# Invariants :
#  - création : enregistrement PUIS résumé (une coupure laisse au pire
#    un enregistrement orphelin, jamais un résumé pendant).
#  - suppression : résumé PUIS payload PUIS enregistrement.
#  - la location d'un enregistrement choisit le backend en lecture/suppression;
#    la configuration courante ne choisit que le backend d'écriture.
# ============================================================
"""Store des versions de channels: validation, quotas, chiffrement, backends, index."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import IO, Any, TypeVar
from uuid import uuid4

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from channelstore.core.constants import (
    DEFAULT_CASCADE_CONCURRENCY,
    MANIFEST_FORMATS,
    UPLOAD_CHUNK_SIZE,
    Actions,
    ResourceTypes,
)
from channelstore.domain.authz import AuthorizationGateway, who_is
from channelstore.domain.channel import Channel, ChannelVersion, Location
from channelstore.domain.errors import (
    AuthorizationError,
    BackendUnavailableError,
    ChannelStoreError,
    DependencyError,
    NotFoundError,
    QueryError,
    ValidationError,
)
from channelstore.domain.manifest import ManifestSyntaxError, parse_all
from channelstore.infra.crypto.content_cipher import ContentCipher
from channelstore.infra.repo.channel_repo import ChannelRepo
from channelstore.infra.repo.db import session_scope
from channelstore.infra.repo.subscription_repo import SubscriptionRepo
from channelstore.infra.repo.version_repo import VersionRepo
from channelstore.infra.secrets.key_manager import KeyManager
from channelstore.infra.storage.base import ObjectExistsError, PayloadRef, StorageBackend
from channelstore.infra.storage.inline import InlineBackend
from channelstore.services.cascade import bounded_fan_out

T = TypeVar("T")

Upload = IO[bytes] | IO[str] | Iterable[bytes]


@dataclass(frozen=True)
class StoreLimits:
    """Quotas et plafonds appliqués par le store."""

    max_channels: int = 1000
    max_versions: int = 1000
    max_content_bytes: int = 3 * 1024 * 1024
    cascade_concurrency: int = DEFAULT_CASCADE_CONCURRENCY


class ChannelVersionStore:
    """Point d'entrée unique des intentions sur les channels et leurs versions.

    Chaque méthode publique est une unité de travail: les erreurs typées du domaine sont
    relayées telles quelles; toute autre erreur est journalisée avec `req_id` puis remplacée
    par une `QueryError` opaque.
    """

    def __init__(
        self,
        engine: Engine,
        gateway: AuthorizationGateway,
        key_manager: KeyManager,
        cipher: ContentCipher | None = None,
        object_store: StorageBackend | None = None,
        limits: StoreLimits | None = None,
    ) -> None:
        self._engine = engine
        self._gateway = gateway
        self._keys = key_manager
        self._cipher = cipher or ContentCipher()
        self._limits = limits or StoreLimits()
        self._backends: dict[Location, StorageBackend] = {Location.INLINE: InlineBackend()}
        if object_store is not None:
            self._backends[Location.OBJECT_STORE] = object_store
        # backend d'écriture choisi par la configuration (object store si configuré)
        self._active = object_store or self._backends[Location.INLINE]
        self._log = structlog.get_logger(__name__).bind(component="channel_version_store")

    @property
    def active_location(self) -> Location:
        return self._active.location

    # ------------------------------------------------------------------
    # Outils internes
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self, query_name: str, req_id: str) -> Iterator[None]:
        try:
            yield
        except ChannelStoreError:
            raise
        except Exception as err:
            self._log.error(
                "query_failed",
                query=query_name,
                req_id=req_id,
                exception_type=type(err).__name__,
                exc_info=True,
            )
            raise QueryError(
                f"Query {query_name} error. MessageID: {req_id}.", trace_id=req_id
            ) from err

    def _tx(self, fn: Callable[[Any], T]) -> T:
        with session_scope(self._engine) as session:
            return fn(session)

    def _authorize(
        self,
        actor: dict[str, Any],
        org_id: str,
        action: Actions,
        query_name: str,
        channel: Channel | None = None,
    ) -> None:
        resource = (channel.uuid, channel.name) if channel else None
        self._gateway.check(actor, org_id, action, ResourceTypes.CHANNEL, query_name, resource)

    def _backend_for(self, location: Location) -> StorageBackend:
        backend = self._backends.get(location)
        if backend is None:
            raise BackendUnavailableError(f"no backend configured for location={location.value}")
        return backend

    def _load_channel(
        self, org_id: str, channel_uuid: str | None = None, channel_name: str | None = None
    ) -> Channel:
        if channel_name is not None:
            channel = self._tx(lambda s: ChannelRepo(s).get_by_name(org_id, channel_name))
        elif channel_uuid is not None:
            channel = self._tx(lambda s: ChannelRepo(s).get(org_id, channel_uuid))
        else:
            raise ValidationError('A "channel_uuid" or "channel_name" must be specified')
        if channel is None:
            ref = channel_name if channel_name is not None else channel_uuid
            raise NotFoundError("channel", f'Could not find the channel with uuid/name "{ref}".')
        return channel

    def _materialize(self, content: str | bytes | None, file: Upload | None) -> bytes:
        """Matérialise la source unique de contenu en un buffer borné."""
        max_bytes = self._limits.max_content_bytes
        too_big = ValidationError(f"YAML file size should not be more than {max_bytes} bytes")
        if content is not None:
            data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        else:
            buf = bytearray()
            for chunk in _iter_chunks(file):
                buf.extend(chunk.encode("utf-8") if isinstance(chunk, str) else chunk)
                if len(buf) > max_bytes:
                    raise too_big
            data = bytes(buf)
        if not data:
            raise ValidationError("The version content must not be empty")
        if len(data) > max_bytes:
            raise too_big
        return data

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def add_channel(
        self,
        org_id: str,
        name: str,
        actor: dict[str, Any],
        tags: list[str] | None = None,
        req_id: str | None = None,
    ) -> str:
        """Crée un channel vide et retourne son uuid."""
        query_name = "addChannel"
        req_id = req_id or str(uuid4())
        self._log.debug(f"{query_name}_enter", req_id=req_id, user=who_is(actor), org_id=org_id)
        with self._guard(query_name, req_id):
            self._authorize(actor, org_id, Actions.CREATE, query_name)
            if not name:
                raise ValidationError('A "name" must be specified')

            def _create(session) -> str:
                repo = ChannelRepo(session)
                # l'index unique couvre la course; la pré-vérification donne un message clair
                if repo.get_by_name(org_id, name):
                    raise ValidationError(f"The channel name {name} already exists.")
                if repo.count(org_id) >= self._limits.max_channels:
                    raise ValidationError(f"Too many channels are registered under {org_id}.")
                uuid = str(uuid4())
                repo.create(
                    Channel(
                        uuid=uuid,
                        org_id=org_id,
                        name=name,
                        tags=list(tags or []),
                        owner_id=actor.get("id"),
                        created=datetime.now(UTC).isoformat(),
                    )
                )
                return uuid

            try:
                uuid = self._tx(_create)
            except IntegrityError as err:
                raise ValidationError(f"The channel name {name} already exists.") from err
            self._log.info("channel_added", req_id=req_id, org_id=org_id, channel_uuid=uuid)
            return uuid

    def edit_channel(
        self,
        org_id: str,
        channel_uuid: str,
        name: str,
        actor: dict[str, Any],
        tags: list[str] | None = None,
        req_id: str | None = None,
    ) -> Channel:
        """Renomme/re-tague un channel et propage le nom aux subscriptions."""
        query_name = "editChannel"
        req_id = req_id or str(uuid4())
        self._log.debug(
            f"{query_name}_enter",
            req_id=req_id,
            user=who_is(actor),
            org_id=org_id,
            channel_uuid=channel_uuid,
        )
        with self._guard(query_name, req_id):
            channel = self._load_channel(org_id, channel_uuid=channel_uuid)
            self._authorize(actor, org_id, Actions.UPDATE, query_name, channel)
            if not name:
                raise ValidationError('A "name" must be specified')
            new_tags = list(tags or [])

            def _update(session) -> None:
                other = ChannelRepo(session).get_by_name(org_id, name)
                if other and other.uuid != channel_uuid:
                    raise ValidationError(f"The channel name {name} already exists.")
                ChannelRepo(session).update(org_id, channel_uuid, name, new_tags)
                SubscriptionRepo(session).rename_channel(org_id, channel_uuid, name)

            try:
                self._tx(_update)
            except IntegrityError as err:
                raise ValidationError(f"The channel name {name} already exists.") from err
            channel.name = name
            channel.tags = new_tags
            return channel

    def get_channel(
        self,
        org_id: str,
        channel_uuid: str,
        actor: dict[str, Any],
        req_id: str | None = None,
    ) -> Channel:
        query_name = "channel"
        req_id = req_id or str(uuid4())
        self._log.debug(f"{query_name}_enter", req_id=req_id, user=who_is(actor), org_id=org_id)
        with self._guard(query_name, req_id):
            channel = self._load_channel(org_id, channel_uuid=channel_uuid)
            self._authorize(actor, org_id, Actions.READ, query_name, channel)
            return channel

    def get_channel_by_name(
        self,
        org_id: str,
        name: str,
        actor: dict[str, Any],
        req_id: str | None = None,
    ) -> Channel:
        query_name = "channelByName"
        req_id = req_id or str(uuid4())
        self._log.debug(f"{query_name}_enter", req_id=req_id, user=who_is(actor), org_id=org_id)
        with self._guard(query_name, req_id):
            channel = self._load_channel(org_id, channel_name=name)
            self._authorize(actor, org_id, Actions.READ, query_name, channel)
            return channel

    def list_channels(
        self, org_id: str, actor: dict[str, Any], req_id: str | None = None
    ) -> list[Channel]:
        """Retourne les channels du tenant que l'acteur peut lire."""
        query_name = "channels"
        req_id = req_id or str(uuid4())
        self._log.debug(f"{query_name}_enter", req_id=req_id, user=who_is(actor), org_id=org_id)
        with self._guard(query_name, req_id):
            channels = self._tx(lambda s: ChannelRepo(s).list_all(org_id))
            allowed: list[Channel] = []
            for channel in channels:
                try:
                    self._authorize(actor, org_id, Actions.READ, query_name, channel)
                except AuthorizationError:
                    continue
                allowed.append(channel)
            return allowed

    def remove_channel(
        self,
        org_id: str,
        channel_uuid: str,
        actor: dict[str, Any],
        req_id: str | None = None,
    ) -> str:
        """Supprime un channel et, en cascade, ses versions et leurs payloads."""
        query_name = "removeChannel"
        req_id = req_id or str(uuid4())
        self._log.debug(
            f"{query_name}_enter",
            req_id=req_id,
            user=who_is(actor),
            org_id=org_id,
            channel_uuid=channel_uuid,
        )
        with self._guard(query_name, req_id):
            channel = self._load_channel(org_id, channel_uuid=channel_uuid)
            self._authorize(actor, org_id, Actions.DELETE, query_name, channel)

            sub_count = self._tx(
                lambda s: SubscriptionRepo(s).count_for_channel(org_id, channel_uuid)
            )
            if sub_count > 0:
                raise DependencyError(
                    sub_count,
                    f"{sub_count} subscription(s) depend on this channel. Please update/remove "
                    "them before removing this channel.",
                )

            remote = self._tx(
                lambda s: VersionRepo(s).list_for_channel(
                    org_id, channel_uuid, location=Location.OBJECT_STORE
                )
            )
            if remote:
                backend = self._backend_for(Location.OBJECT_STORE)
                bounded_fan_out(
                    remote,
                    lambda version: backend.discard(version.payload),
                    max_workers=self._limits.cascade_concurrency,
                )

            deleted = self._tx(lambda s: VersionRepo(s).delete_for_channel(org_id, channel_uuid))
            self._tx(lambda s: ChannelRepo(s).delete(org_id, channel_uuid))
            self._log.info(
                "channel_removed",
                req_id=req_id,
                org_id=org_id,
                channel_uuid=channel_uuid,
                versions=deleted,
                remote_payloads=len(remote),
            )
            return channel_uuid

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def add_version(
        self,
        org_id: str,
        channel_uuid: str,
        name: str,
        type: str,
        actor: dict[str, Any],
        content: str | bytes | None = None,
        file: Upload | None = None,
        description: str | None = None,
        req_id: str | None = None,
    ) -> str:
        """Chiffre et persiste une nouvelle version; retourne son uuid."""
        query_name = "addChannelVersion"
        req_id = req_id or str(uuid4())
        self._log.debug(
            f"{query_name}_enter",
            req_id=req_id,
            user=who_is(actor),
            org_id=org_id,
            channel_uuid=channel_uuid,
            name=name,
            type=type,
        )
        with self._guard(query_name, req_id):
            # l'organisation d'abord: un tenant inconnu est signalé comme tel
            org_key = self._keys.current_key(org_id)
            channel = self._load_channel(org_id, channel_uuid=channel_uuid)
            self._authorize(actor, org_id, Actions.MANAGE_VERSION, query_name, channel)

            if not name:
                raise ValidationError('A "name" must be specified')
            if type not in MANIFEST_FORMATS:
                raise ValidationError('A "type" of application/yaml must be specified')
            if content is not None and file is not None:
                raise ValidationError('Only one of "file" or "content" must be specified')
            if content is None and file is None:
                raise ValidationError('A "file" or "content" must be specified')

            def _checks(session) -> tuple[bool, int]:
                repo = VersionRepo(session)
                return (
                    repo.name_exists(org_id, channel.uuid, name),
                    repo.count_for_channel(org_id, channel.uuid),
                )

            exists, total = self._tx(_checks)
            if exists:
                raise ValidationError(f"The version name {name} already exists")
            if total >= self._limits.max_versions:
                raise ValidationError(
                    f"Too many channel version are registered under {channel.uuid}."
                )

            data = self._materialize(content, file)
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError as err:
                raise ValidationError(
                    "Provided YAML content is not valid: content must be UTF-8 encoded "
                    f"({err.reason} at byte {err.start})"
                ) from err
            try:
                parse_all(text)
            except ManifestSyntaxError as err:
                raise ValidationError(
                    f"Provided YAML content is not valid: {err.diagnostic}"
                ) from err

            iv = self._cipher.new_iv()
            ciphertext = self._cipher.encrypt(data, org_key, iv)

            backend = self._active
            try:
                payload = backend.store(PayloadRef(org_id, channel.uuid, name), ciphertext)
            except ObjectExistsError as err:
                # la clé d'objet est déjà prise par un ajout concurrent du même nom
                raise ValidationError(f"The version name {name} already exists") from err
            version = ChannelVersion(
                uuid=str(uuid4()),
                org_id=org_id,
                channel_uuid=channel.uuid,
                channel_name=channel.name,
                name=name,
                description=description,
                type=type,
                payload=payload,
                iv=self._cipher.encode_iv(iv),
                owner_id=actor.get("id"),
                created=datetime.now(UTC).isoformat(),
            )

            try:
                self._tx(lambda s: VersionRepo(s).create(version))
            except IntegrityError as err:
                # course perdue contre un ajout concurrent du même nom
                backend.discard(payload)
                raise ValidationError(f"The version name {name} already exists") from err

            appended = self._tx(
                lambda s: ChannelRepo(s).append_summary(org_id, channel.uuid, version.summary())
            )
            if not appended:
                self._log.warning(
                    "version_orphaned",
                    req_id=req_id,
                    org_id=org_id,
                    channel_uuid=channel.uuid,
                    version_uuid=version.uuid,
                )
                raise NotFoundError(
                    "channel", f'channel uuid "{channel.uuid}" was removed during the upload'
                )
            self._log.info(
                "channel_version_added",
                req_id=req_id,
                org_id=org_id,
                channel_uuid=channel.uuid,
                version_uuid=version.uuid,
                location=version.location.value,
                size=len(data),
            )
            return version.uuid

    def get_version(
        self,
        org_id: str,
        actor: dict[str, Any],
        channel_uuid: str | None = None,
        version_uuid: str | None = None,
        channel_name: str | None = None,
        version_name: str | None = None,
        req_id: str | None = None,
        _query_name: str | None = None,
    ) -> ChannelVersion:
        """Retourne une version avec son contenu déchiffré.

        Trois recherches indépendantes, chacune avec sa propre NotFoundError: channel, résumé
        dans l'index du channel, puis enregistrement de version.
        """
        query_name = f"{_query_name}/channelVersion" if _query_name else "channelVersion"
        req_id = req_id or str(uuid4())
        self._log.debug(
            f"{query_name}_enter",
            req_id=req_id,
            user=who_is(actor),
            org_id=org_id,
            channel_uuid=channel_uuid,
            version_uuid=version_uuid,
            channel_name=channel_name,
            version_name=version_name,
        )
        with self._guard(query_name, req_id):
            if version_uuid is None and version_name is None:
                raise ValidationError('A "version_uuid" or "version_name" must be specified')
            org_key = self._keys.current_key(org_id)
            channel = self._load_channel(org_id, channel_uuid, channel_name)
            self._authorize(actor, org_id, Actions.READ, query_name, channel)

            summary = channel.find_version(version_uuid, version_name)
            if summary is None:
                ref = version_uuid if version_uuid is not None else version_name
                raise NotFoundError(
                    "version", f'versionObj "{ref}" is not found for {channel.name}:{channel.uuid}'
                )

            record = self._tx(lambda s: VersionRepo(s).get(org_id, summary.uuid, channel.uuid))
            if record is None:
                raise NotFoundError(
                    "deployable_version",
                    f"DeployableVersion is not found for {channel.name}:{channel.uuid}/"
                    f"{summary.name}:{summary.uuid}.",
                )

            ciphertext = self._backend_for(record.location).load(record.payload)
            plaintext = self._cipher.decrypt(
                ciphertext, org_key, self._cipher.decode_iv(record.iv)
            )
            record.content = plaintext.decode("utf-8")
            return record

    def get_version_by_name(
        self,
        org_id: str,
        channel_name: str,
        version_name: str,
        actor: dict[str, Any],
        req_id: str | None = None,
    ) -> ChannelVersion:
        return self.get_version(
            org_id,
            actor,
            channel_name=channel_name,
            version_name=version_name,
            req_id=req_id,
            _query_name="channelVersionByName",
        )

    def remove_version(
        self,
        org_id: str,
        version_uuid: str,
        actor: dict[str, Any],
        req_id: str | None = None,
    ) -> str:
        """Supprime une version: résumé, puis payload distant, puis enregistrement."""
        query_name = "removeChannelVersion"
        req_id = req_id or str(uuid4())
        self._log.debug(
            f"{query_name}_enter",
            req_id=req_id,
            user=who_is(actor),
            org_id=org_id,
            version_uuid=version_uuid,
        )
        with self._guard(query_name, req_id):
            record = self._tx(lambda s: VersionRepo(s).get(org_id, version_uuid))
            if record is None:
                raise NotFoundError(
                    "deployable_version", f'version uuid "{version_uuid}" not found'
                )
            channel = self._load_channel(org_id, channel_uuid=record.channel_uuid)
            self._authorize(actor, org_id, Actions.MANAGE_VERSION, query_name, channel)

            sub_count = self._tx(
                lambda s: SubscriptionRepo(s).count_for_version(org_id, version_uuid)
            )
            if sub_count > 0:
                raise DependencyError(
                    sub_count,
                    f"{sub_count} subscriptions depend on this channel version. Please "
                    "update/remove them before removing this channel version.",
                )

            if channel.find_version(version_uuid=version_uuid) is None:
                raise NotFoundError(
                    "version",
                    f'versionObj "{version_uuid}" is not found for {channel.name}:{channel.uuid}',
                )

            self._tx(lambda s: ChannelRepo(s).remove_summary(org_id, channel.uuid, version_uuid))
            self._backend_for(record.location).discard(record.payload)
            self._tx(lambda s: VersionRepo(s).delete(org_id, version_uuid))
            self._log.info(
                "channel_version_removed",
                req_id=req_id,
                org_id=org_id,
                channel_uuid=channel.uuid,
                version_uuid=version_uuid,
                location=record.location.value,
            )
            return version_uuid

    # ------------------------------------------------------------------
    # Orphelins
    # ------------------------------------------------------------------

    def find_orphan_versions(
        self, org_id: str, min_age: timedelta = timedelta(minutes=10)
    ) -> list[ChannelVersion]:
        """Liste les enregistrements qu'aucun index de channel ne référence.

        `min_age` écarte les créations en cours (enregistrement écrit, résumé pas encore ajouté).
        """
        indexed = self._tx(lambda s: ChannelRepo(s).indexed_version_uuids(org_id))
        records = self._tx(lambda s: VersionRepo(s).list_all(org_id))
        cutoff = datetime.now(UTC) - min_age
        return [
            r for r in records if r.uuid not in indexed and _parse_created(r.created) <= cutoff
        ]

    def discard_orphan_version(self, version: ChannelVersion) -> None:
        """Supprime un orphelin: payload distant puis enregistrement (aucun index touché)."""
        self._backend_for(version.location).discard(version.payload)
        self._tx(lambda s: VersionRepo(s).delete(version.org_id, version.uuid))
        self._log.info(
            "orphan_version_discarded", org_id=version.org_id, version_uuid=version.uuid
        )


def _iter_chunks(file: Upload) -> Iterator[bytes | str]:
    """Itère sur un upload: objet fichier (lecture par blocs) ou itérable de blocs."""
    read = getattr(file, "read", None)
    if read is None:
        yield from file  # type: ignore[misc]
        return
    while True:
        chunk = read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        yield chunk


def _parse_created(value: str) -> datetime:
    if not value:
        return datetime.min.replace(tzinfo=UTC)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        # SQLite ne conserve pas le fuseau: les dates sont écrites en UTC
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
