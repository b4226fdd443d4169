from __future__ import annotations
"""Remote calls against an S3-compatible COS endpoint."""
import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import quote

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .errors import NotFoundError, TransportError, ValidationError
from .utils import PATH_SEPARATOR, as_dir_path, is_dir_path, key_to_name, normalize_path, path_to_key

LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 1000
LIST_PATTERNS = ("both", "dir_only", "file_only")
NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}
BIZ_ATTR_METADATA_KEY = "biz-attr"
PRESERVED_HEADERS = (
    "ContentType",
    "ContentDisposition",
    "ContentEncoding",
    "ContentLanguage",
    "CacheControl",
    "Expires",
)


class TransferCancelledError(RuntimeError):
    """Raised when an upload or download is cancelled by the caller."""


def _epoch(value) -> str | None:
    if value is None:
        return None
    return str(int(value.timestamp()))


def _etag(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip('"') or None


class CosListingService:
    """Talks to one COS endpoint on behalf of any number of bucket handles."""

    def __init__(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region: str | None = None,
        client_factory: Callable[..., object] | None = None,
    ):
        self._endpoint_url = endpoint_url
        self._access_key = access_key
        self._secret_key = secret_key
        self._region = region or None
        self._client_factory = client_factory or boto3.client
        self._client = None

    @property
    def endpoint_url(self) -> str:
        return self._endpoint_url

    @property
    def client(self):
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self):
        config = Config(signature_version="s3v4", s3={"addressing_style": "path"})
        return self._client_factory(
            "s3",
            endpoint_url=self._endpoint_url,
            region_name=self._region,
            aws_access_key_id=self._access_key,
            aws_secret_access_key=self._secret_key,
            config=config,
        )

    def _call(self, operation: str, func: Callable[..., Any], *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                LOGGER.debug("%s: not found (%s)", operation, code)
                raise NotFoundError(str(exc), code=code) from exc
            LOGGER.warning("%s failed: %s", operation, exc)
            raise TransportError(str(exc), code=code or None) from exc
        except (BotoCoreError, S3UploadFailedError) as exc:
            LOGGER.warning("%s failed: %s", operation, exc)
            raise TransportError(str(exc)) from exc

    def object_url(self, bucket_name: str, key: str) -> str:
        base = self._endpoint_url.rstrip(PATH_SEPARATOR)
        return f"{base}/{bucket_name}/{quote(key)}"

    def list_buckets(self) -> list[str]:
        """Return the available bucket names."""

        response = self._call("ListBuckets", self.client.list_buckets)
        return [bucket["Name"] for bucket in response.get("Buckets", [])]

    def list(self, path: str, options: dict[str, Any]) -> dict[str, Any]:
        """Fetch one page of the directory at ``path``.

        Returns ``infos`` (raw entries, directories first), the per-page
        ``dir_count``/``file_count``, the ``context`` of the next page and
        ``has_more``.
        """

        bucket_name = options.get("bucket")
        if not bucket_name:
            raise ValidationError("Listing options must name a bucket")
        pattern = options.get("pattern") or "both"
        if pattern not in LIST_PATTERNS:
            raise ValidationError(f"pattern must be one of {', '.join(LIST_PATTERNS)}")
        try:
            num = int(options.get("num") or DEFAULT_PAGE_SIZE)
        except (TypeError, ValueError) as exc:
            raise ValidationError("num must be an integer") from exc
        num = min(max(num, 1), MAX_PAGE_SIZE)

        dir_key = path_to_key(as_dir_path(path))
        list_params: dict[str, Any] = {
            "Bucket": bucket_name,
            "MaxKeys": num,
            "Delimiter": PATH_SEPARATOR,
        }
        key_prefix = dir_key + (options.get("prefix") or "")
        if key_prefix:
            list_params["Prefix"] = key_prefix
        if options.get("context"):
            list_params["ContinuationToken"] = options["context"]

        response = self._call("ListObjectsV2", self.client.list_objects_v2, **list_params)

        dirs: list[dict[str, Any]] = []
        files: list[dict[str, Any]] = []
        if pattern != "file_only":
            for common in response.get("CommonPrefixes", []):
                dirs.append(self._dir_entry(common["Prefix"]))
        if pattern != "dir_only":
            for obj in response.get("Contents", []):
                if obj["Key"] == dir_key:
                    # the directory's own marker object
                    continue
                files.append(self._file_entry(bucket_name, obj["Key"], obj))

        token = response.get("NextContinuationToken")
        return {
            "infos": dirs + files,
            "dir_count": len(dirs),
            "file_count": len(files),
            "context": token,
            "has_more": bool(response.get("IsTruncated", False) and token),
        }

    def head(self, bucket_name: str, path: str) -> dict[str, Any]:
        """Return the raw entry for a file, a directory or the bucket root."""

        path = normalize_path(path)
        key = path_to_key(path)
        if not key:
            self._call("HeadBucket", self.client.head_bucket, Bucket=bucket_name)
            return {"name": "", "ctime": None, "mtime": None}

        if not is_dir_path(path):
            response = self._call("HeadObject", self.client.head_object, Bucket=bucket_name, Key=key)
            return self._file_entry(bucket_name, key, response)

        try:
            response = self._call("HeadObject", self.client.head_object, Bucket=bucket_name, Key=key)
        except NotFoundError:
            # directories created implicitly by uploads have no marker object
            probe = self._call(
                "ListObjectsV2",
                self.client.list_objects_v2,
                Bucket=bucket_name,
                Prefix=key,
                MaxKeys=1,
            )
            if not probe.get("Contents") and not probe.get("CommonPrefixes"):
                raise
            return self._dir_entry(key)
        entry = self._dir_entry(key)
        entry["ctime"] = entry["mtime"] = _epoch(response.get("LastModified"))
        entry["biz_attr"] = (response.get("Metadata") or {}).get(BIZ_ATTR_METADATA_KEY)
        return entry

    def update_biz_attr(self, bucket_name: str, path: str, biz_attr: str) -> None:
        """Replace the business attribute, keeping other metadata and content headers."""

        key = self._require_key(path)
        current = self._call("HeadObject", self.client.head_object, Bucket=bucket_name, Key=key)
        metadata = dict(current.get("Metadata") or {})
        metadata[BIZ_ATTR_METADATA_KEY] = biz_attr or ""
        headers = {name: current[name] for name in PRESERVED_HEADERS if current.get(name)}
        self._call(
            "CopyObject",
            self.client.copy_object,
            Bucket=bucket_name,
            Key=key,
            CopySource={"Bucket": bucket_name, "Key": key},
            Metadata=metadata,
            MetadataDirective="REPLACE",
            **headers,
        )

    def delete(self, bucket_name: str, path: str) -> None:
        key = self._require_key(path)
        self._call("DeleteObject", self.client.delete_object, Bucket=bucket_name, Key=key)

    def create_folder(self, bucket_name: str, path: str, biz_attr: str = "") -> dict[str, Any]:
        key = self._require_key(as_dir_path(path))
        metadata = {BIZ_ATTR_METADATA_KEY: biz_attr} if biz_attr else {}
        self._call(
            "PutObject",
            self.client.put_object,
            Bucket=bucket_name,
            Key=key,
            Body=b"",
            Metadata=metadata,
        )
        now = str(int(time.time()))
        entry = self._dir_entry(key)
        entry.update(ctime=now, mtime=now, biz_attr=biz_attr or None)
        return entry

    def generate_url(
        self,
        bucket_name: str,
        path: str,
        *,
        expires_in: int = 3600,
        signed: bool = True,
    ) -> str:
        """Return a download URL, presigned unless ``signed`` is false."""

        key = self._require_key(path)
        if not signed:
            return self.object_url(bucket_name, key)
        if expires_in <= 0:
            raise ValidationError("expires_in must be greater than zero")
        return self._call(
            "GeneratePresignedUrl",
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": bucket_name, "Key": key},
            ExpiresIn=expires_in,
        )

    def upload_file(
        self,
        bucket_name: str,
        path: str,
        source_path: str,
        *,
        biz_attr: str = "",
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Upload a local file to ``path``."""

        key = self._require_key(path)
        callback = self._build_transfer_callback(progress_callback, cancel_requested)
        extra_args = {"Metadata": {BIZ_ATTR_METADATA_KEY: biz_attr}} if biz_attr else None
        self._call(
            "UploadFile",
            self.client.upload_file,
            source_path,
            bucket_name,
            key,
            Callback=callback,
            ExtraArgs=extra_args,
        )

    def download_file(
        self,
        bucket_name: str,
        path: str,
        destination: str,
        *,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Download the object at ``path`` to a local file."""

        key = self._require_key(path)
        callback = self._build_transfer_callback(progress_callback, cancel_requested)
        self._call(
            "DownloadFile",
            self.client.download_file,
            bucket_name,
            key,
            destination,
            Callback=callback,
        )

    def _require_key(self, path: str) -> str:
        key = path_to_key(path)
        if not key:
            raise ValidationError("Operation is not allowed on the bucket root")
        return key

    def _dir_entry(self, key: str) -> dict[str, Any]:
        return {"name": key_to_name(key), "ctime": None, "mtime": None, "biz_attr": None}

    def _file_entry(self, bucket_name: str, key: str, obj: dict[str, Any]) -> dict[str, Any]:
        size = obj.get("Size", obj.get("ContentLength"))
        modified = _epoch(obj.get("LastModified"))
        return {
            "name": key_to_name(key),
            "filesize": size,
            "filelen": size,
            "sha": _etag(obj.get("ETag")),
            "ctime": modified,
            "mtime": modified,
            "biz_attr": (obj.get("Metadata") or {}).get(BIZ_ATTR_METADATA_KEY),
            "access_url": self.object_url(bucket_name, key),
        }

    def _build_transfer_callback(
        self,
        progress_callback: Optional[Callable[[int], None]],
        cancel_requested: Optional[Callable[[], bool]],
    ):
        if not progress_callback and not cancel_requested:
            return None

        transferred = 0

        def _callback(bytes_amount: int) -> None:
            nonlocal transferred
            if cancel_requested and cancel_requested():
                raise TransferCancelledError("Transfer cancelled by user")
            transferred += bytes_amount
            if progress_callback:
                progress_callback(transferred)
            if cancel_requested and cancel_requested():
                raise TransferCancelledError("Transfer cancelled by user")

        return _callback
