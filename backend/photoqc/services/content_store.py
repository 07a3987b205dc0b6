"""
Stockage des fichiers photo.

Deux implémentations d'une même interface put/get/delete :
- S3ContentStore  : bucket S3 (production), via boto3
- LocalContentStore : répertoire local (développement, démonstration hors ligne)

Toute erreur d'accès au stockage est convertie en StorageError (kind "dependency").
"""

import logging
from functools import lru_cache
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from photoqc.config import settings
from photoqc.errors import StorageError

logger = logging.getLogger(__name__)


class ContentStore:
    """Interface du stockage de contenu."""

    def put(self, key: str, data: bytes, content_type: str) -> str:
        """Écrit l'objet et retourne son URL."""
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class S3ContentStore(ContentStore):
    def __init__(self, bucket: str, region: str, client=None):
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region)

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Échec upload S3 %s : %s", key, exc)
            raise StorageError(f"put {key}: {exc}") from exc
        return self.url_for(key)

    def get(self, key: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as exc:
            logger.error("Échec lecture S3 %s : %s", key, exc)
            raise StorageError(f"get {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(f"delete {key}: {exc}") from exc


class LocalContentStore(ContentStore):
    def __init__(self, base_dir: str):
        self.base = Path(base_dir)

    def _path(self, key: str) -> Path:
        path = (self.base / key).resolve()
        if self.base.resolve() not in path.parents:
            raise StorageError(f"clé hors du répertoire de stockage : {key}")
        return path

    def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            logger.error("Échec écriture locale %s : %s", key, exc)
            raise StorageError(f"put {key}: {exc}") from exc
        return path.as_uri()

    def get(self, key: str) -> bytes:
        try:
            return self._path(key).read_bytes()
        except OSError as exc:
            raise StorageError(f"get {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"delete {key}: {exc}") from exc


@lru_cache
def get_content_store() -> ContentStore:
    """Dépendance FastAPI : instance unique du stockage configuré (STORAGE_BACKEND)."""
    if settings.STORAGE_BACKEND == "local":
        logger.info("Stockage photos local : %s", settings.LOCAL_STORAGE_DIR)
        return LocalContentStore(settings.LOCAL_STORAGE_DIR)
    if settings.STORAGE_BACKEND == "s3":
        return S3ContentStore(settings.AWS_S3_BUCKET_NAME, settings.AWS_REGION)
    raise ValueError(f"STORAGE_BACKEND inconnu : {settings.STORAGE_BACKEND}")
