"""Client S3 (AWS / Minio / COS) pour le backend object store.

Implémente le protocole `ObjectStoreClient` au-dessus de boto3. Les locators retournés sont des
URLs de chemin `{endpoint}/{bucket}/{key}` (clé encodée), que `split_locator` sait relire.
"""

from __future__ import annotations

from urllib.parse import quote

import boto3
import structlog
from botocore.client import Config
from botocore.exceptions import ClientError

from channelstore.infra.storage.base import ObjectExistsError

_BUCKET_MISSING_CODES = {"404", "NoSuchBucket", "NotFound"}
_BUCKET_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
_OBJECT_EXISTS_CODES = {"412", "PreconditionFailed", "ConditionalRequestConflict"}


class S3ObjectStoreClient:
    """Client S3 minimal (création de bucket idempotente, put/get/delete)."""

    def __init__(
        self,
        endpoint: str,
        access_key_id: str | None,
        secret_access_key: str | None,
        location_constraint: str | None = None,
    ) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.location_constraint = location_constraint
        self.client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        )
        self._log = structlog.get_logger(__name__).bind(component="s3_client")

    def locator(self, bucket: str, key: str) -> str:
        return f"{self.endpoint}/{bucket}/{quote(key, safe='')}"

    def ensure_bucket(self, bucket: str) -> None:
        """Crée le bucket s'il n'existe pas."""
        try:
            self.client.head_bucket(Bucket=bucket)
            return
        except ClientError as e:
            if e.response["Error"]["Code"] not in _BUCKET_MISSING_CODES:
                raise
        self._log.info("s3_bucket_create", bucket=bucket)
        params: dict = {"Bucket": bucket}
        if self.location_constraint:
            params["CreateBucketConfiguration"] = {
                "LocationConstraint": self.location_constraint
            }
        try:
            self.client.create_bucket(**params)
        except ClientError as e:
            # création concurrente par un autre process
            if e.response["Error"]["Code"] not in _BUCKET_EXISTS_CODES:
                raise

    def put(self, bucket: str, key: str, data: bytes) -> str:
        """Écriture conditionnelle: une clé déjà occupée n'est jamais écrasée."""
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data, IfNoneMatch="*")
        except ClientError as e:
            if e.response["Error"]["Code"] in _OBJECT_EXISTS_CODES:
                raise ObjectExistsError(bucket, key) from e
            raise
        return self.locator(bucket, key)

    def get(self, bucket: str, key: str) -> bytes:
        response = self.client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()

    def delete(self, bucket: str, key: str) -> None:
        self.client.delete_object(Bucket=bucket, Key=key)
