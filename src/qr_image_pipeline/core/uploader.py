"""Object storage uploader for finished archives."""

import hashlib
import mimetypes
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

from botocore.exceptions import ClientError

from .error_handling import is_not_found, wrap_errors
from .exceptions import UploadError
from .logging_config import get_logger
from .protocols import S3ClientProtocol, Uploader

DIGEST_METADATA_KEY = "sha256"
_PLAIN_MD5_ETAG = re.compile(r"[0-9a-f]{32}")


def build_object_key(remote_path: str, file_name: str) -> str:
    """Join a storage folder and a file name into an S3 key."""
    prefix = remote_path.strip("/")
    return f"{prefix}/{file_name}" if prefix else file_name


class S3Uploader(Uploader):
    """Uploads files to S3 and returns a stable public URL."""

    def __init__(self, s3_client: S3ClientProtocol, public_base_url: Optional[str] = None):
        self._s3_client = s3_client
        self._public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self._logger = get_logger("uploader")

    def object_url(self, container: str, key: str) -> str:
        quoted = quote(key)
        if self._public_base_url:
            return f"{self._public_base_url}/{container}/{quoted}"
        return f"https://{container}.s3.amazonaws.com/{quoted}"

    @wrap_errors(UploadError)
    def upload(
        self,
        local_file: Union[str, Path],
        container: str,
        remote_path: str,
        overwrite: bool = False,
    ) -> str:
        path = Path(local_file)
        if not container:
            raise UploadError("No storage container given")
        if not path.is_file():
            raise UploadError(f"Local file {path} does not exist")

        body = path.read_bytes()
        key = build_object_key(remote_path, path.name)
        url = self.object_url(container, key)

        digest = hashlib.sha256(body).hexdigest()
        if not overwrite:
            existing = self._head(container, key)
            if existing is not None:
                if self._holds_content(existing, body, digest):
                    self._logger.info(f"s3://{container}/{key} already holds this content")
                    return url
                raise UploadError(
                    f"s3://{container}/{key} exists with different content and overwrite is off"
                )

        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        self._logger.debug(f"Uploading {path} to s3://{container}/{key}")
        self._s3_client.put_object(
            Bucket=container,
            Key=key,
            Body=body,
            ContentType=content_type,
            Metadata={DIGEST_METADATA_KEY: digest},
        )
        self._logger.info(f"Uploaded {path.name} to {url}")
        return url

    def _head(self, container: str, key: str) -> Optional[Dict[str, Any]]:
        try:
            return self._s3_client.head_object(Bucket=container, Key=key)
        except ClientError as e:
            if is_not_found(e):
                return None
            raise

    @staticmethod
    def _holds_content(head: Dict[str, Any], body: bytes, digest: str) -> bool:
        """Compare by the stored sha256, or by ETag when it is a plain MD5.

        KMS-encrypted and multipart objects have ETags that are not an MD5 of
        the body.
        """
        stored = (head.get("Metadata") or {}).get(DIGEST_METADATA_KEY)
        if stored:
            return stored == digest
        etag = str(head.get("ETag", "")).strip('"').lower()
        if _PLAIN_MD5_ETAG.fullmatch(etag):
            return etag == hashlib.md5(body).hexdigest()
        return False
