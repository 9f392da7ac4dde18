# storage/oracle_s3.py
import logging
from datetime import timedelta
from urllib.parse import quote

import oci

from services.errors import BlobStoreError, BlobNotFound
from services.utils import utcnow, new_id

logger = logging.getLogger("Storage")

CHUNK_SIZE = 1024 * 1024


class OracleBlobStore:
    """
    Object storage on Oracle Cloud, used for source videos and reaction recordings.
    The client is built from the explicit Settings signing credentials.
    """

    def __init__(self, settings, client=None):
        self.namespace = settings.oracle_namespace
        self.region = settings.oracle_region
        self._client = client
        self._settings = settings

    @property
    def client(self):
        if self._client is None:
            config = {
                "user": self._settings.oracle_user_ocid,
                "key_file": self._settings.oracle_key_file,
                "fingerprint": self._settings.oracle_fingerprint,
                "tenancy": self._settings.oracle_tenancy_ocid,
                "region": self.region,
            }
            try:
                oci.config.validate_config(config)
            except oci.exceptions.InvalidConfig as e:
                logger.error(f"[OCI] Invalid signing configuration: {e}")
                raise BlobStoreError("Object storage is not configured")
            self._client = oci.object_storage.ObjectStorageClient(config)
        return self._client

    def upload(self, bucket: str, path: str, body, content_type: str = "video/mp4") -> str:
        """Body is bytes or an open binary file."""
        logger.info(f"[OCI] Uploading '{path}' to bucket '{bucket}'")
        try:
            self.client.put_object(
                namespace_name=self.namespace,
                bucket_name=bucket,
                object_name=path,
                put_object_body=body,
                content_type=content_type,
            )
        except oci.exceptions.ServiceError as se:
            logger.error(f"[OCI] Upload failed for {path}: {se.status} {se.message}")
            raise BlobStoreError()
        logger.info(f"[OCI] Upload successful: {path}")
        return path

    def upload_file(self, bucket: str, path: str, local_path: str, content_type: str = "video/mp4") -> str:
        with open(local_path, "rb") as f:
            return self.upload(bucket, path, f, content_type)

    def _get(self, bucket: str, path: str):
        try:
            return self.client.get_object(self.namespace, bucket, path)
        except oci.exceptions.ServiceError as se:
            if se.status == 404:
                logger.warning(f"[OCI] Object not found: {bucket}/{path}")
                raise BlobNotFound()
            logger.error(f"[OCI] Download failed for {path}: {se.status} {se.message}")
            raise BlobStoreError()

    def download(self, bucket: str, path: str) -> bytes:
        return self._get(bucket, path).data.content

    def download_to_file(self, bucket: str, path: str, destination: str) -> str:
        logger.info(f"[OCI] Downloading '{path}' to '{destination}'")
        response = self._get(bucket, path)
        with open(destination, "wb") as f:
            for chunk in response.data.raw.stream(CHUNK_SIZE, decode_content=False):
                f.write(chunk)
        logger.info(f"[OCI] Download successful: {path}")
        return destination

    def get_public_url(self, bucket: str, path: str) -> str:
        return (f"https://objectstorage.{self.region}.oraclecloud.com"
                f"/n/{self.namespace}/b/{bucket}/o/{quote(path, safe='')}")

    def get_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        """Read-only pre-authenticated request for one object, expiring after ttl_seconds."""
        details = oci.object_storage.models.CreatePreauthenticatedRequestDetails(
            name=f"read-{new_id()}",
            object_name=path,
            access_type="ObjectRead",
            time_expires=utcnow() + timedelta(seconds=ttl_seconds),
        )
        try:
            par = self.client.create_preauthenticated_request(self.namespace, bucket, details)
        except oci.exceptions.ServiceError as se:
            logger.error(f"[OCI] Could not sign {bucket}/{path}: {se.status} {se.message}")
            raise BlobStoreError()
        return f"https://objectstorage.{self.region}.oraclecloud.com{par.data.access_uri}"

    def delete(self, bucket: str, path: str):
        try:
            self.client.delete_object(self.namespace, bucket, path)
        except oci.exceptions.ServiceError as se:
            if se.status == 404:
                return
            logger.error(f"[OCI] Delete failed for {path}: {se.status} {se.message}")
            raise BlobStoreError()
