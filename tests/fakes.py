"""
Fakes pour les tests unitaires.

Ce module fournit une implémentation en mémoire du client object store, avec compteurs d'appels,
suivi de la concurrence et injection de pannes, pour tester le store sans S3.
"""

from __future__ import annotations

import threading
import time
from urllib.parse import quote

from channelstore.infra.storage.base import ObjectExistsError


class FakeObjectStoreClient:
    """
    Client object store en mémoire.

    - `buckets` : buckets créés (ensure_bucket idempotent).
    - `objects` : {(bucket, key): bytes}; `put` refuse une clé déjà occupée.
    - `fail_delete_keys` : clés dont la suppression lève RuntimeError.
    - `delete_delay` : pause (s) pendant chaque suppression, pour mesurer la concurrence.
    """

    endpoint = "http://s3.local:9000"

    def __init__(self) -> None:
        self.buckets: set[str] = set()
        self.objects: dict[tuple[str, str], bytes] = {}
        self.create_bucket_calls = 0
        self.ensure_bucket_calls = 0
        self.deleted: list[str] = []
        self.fail_delete_keys: set[str] = set()
        self.delete_delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def ensure_bucket(self, bucket: str) -> None:
        self.ensure_bucket_calls += 1
        if bucket not in self.buckets:
            self.create_bucket_calls += 1
            self.buckets.add(bucket)

    def put(self, bucket: str, key: str, data: bytes) -> str:
        if bucket not in self.buckets:
            raise RuntimeError(f"NoSuchBucket: {bucket}")
        if (bucket, key) in self.objects:
            raise ObjectExistsError(bucket, key)
        self.objects[(bucket, key)] = bytes(data)
        return f"{self.endpoint}/{bucket}/{quote(key, safe='')}"

    def get(self, bucket: str, key: str) -> bytes:
        try:
            return self.objects[(bucket, key)]
        except KeyError as err:
            raise RuntimeError(f"NoSuchKey: {key}") from err

    def delete(self, bucket: str, key: str) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delete_delay:
                time.sleep(self.delete_delay)
            if key in self.fail_delete_keys:
                raise RuntimeError(f"object store unavailable for {key}")
            with self._lock:
                self.objects.pop((bucket, key), None)
                self.deleted.append(key)
        finally:
            with self._lock:
                self.in_flight -= 1


class DenyAllGateway:
    """Passerelle refusant toute action."""

    def check(self, actor, org_id, action, resource_type, context, resource=None) -> None:
        from channelstore.domain.errors import AuthorizationError

        raise AuthorizationError(f"denied {action.value} for {context}")
