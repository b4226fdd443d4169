from __future__ import annotations
"""Typed file and directory resources built from raw listing entries."""
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
import time
from typing import Any, ClassVar, Optional

from .errors import ValidationError
from .utils import file_digest, format_size, join_list_path, normalize_path

REQUIRED_ENTRY_KEYS = ("ctime", "mtime")
OPTIONAL_ATTRS = (
    "biz_attr",
    "filesize",
    "filelen",
    "sha",
    "access_url",
    # root directory parameters
    "authority",
    "bucket_type",
    "migrate_source_domain",
    "need_preview",
    "refers",
)


def _timestamp(value: object) -> datetime:
    try:
        seconds = int(value or 0)
    except (TypeError, ValueError):
        seconds = 0
    try:
        return datetime.fromtimestamp(seconds)
    except (OverflowError, OSError, ValueError):
        return datetime.fromtimestamp(0)


@dataclass(eq=False)
class ResourceOperator:
    """Common behaviour of files and directories.

    Every remote operation is delegated to ``bucket``; the resource never owns
    the bucket handle.
    """

    type: ClassVar[str] = ""

    bucket: Any = field(repr=False)
    path: str
    name: str
    ctime: Optional[str]
    mtime: Optional[str]
    biz_attr: Optional[str] = None
    filesize: Optional[int] = None
    filelen: Optional[int] = None
    sha: Optional[str] = None
    access_url: Optional[str] = None
    authority: Optional[str] = None
    bucket_type: Optional[int] = None
    migrate_source_domain: Optional[str] = None
    need_preview: Optional[str] = None
    refers: Optional[list] = None

    @property
    def created_at(self) -> datetime:
        return _timestamp(self.ctime)

    @property
    def updated_at(self) -> datetime:
        return _timestamp(self.mtime)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "bucket": self.bucket.bucket_name,
            "path": self.path,
            "name": self.name,
            "ctime": self.ctime,
            "mtime": self.mtime,
        }
        for key in OPTIONAL_ATTRS:
            value = getattr(self, key)
            if value is None or (isinstance(value, (str, list, dict)) and not value):
                continue
            data[key] = value
        return data

    def exists(self) -> bool:
        return self.bucket.exists_at(self.path)

    def stat(self) -> ResourceOperator:
        """Fetch fresh metadata; ``self`` is left untouched."""

        return self.bucket.stat_at(self.path)

    def update(self, biz_attr: str) -> ResourceOperator:
        """Replace the business attribute remotely, then locally."""

        self.bucket.update_at(self.path, biz_attr)
        self.mtime = str(int(time.time()))
        self.biz_attr = biz_attr
        return self

    def delete(self) -> None:
        self.bucket.delete_at(self.path)


@dataclass(eq=False)
class FileResource(ResourceOperator):
    """A file stored in a bucket."""

    type: ClassVar[str] = "file"

    def size(self) -> int:
        try:
            return int(self.filesize or 0)
        except (TypeError, ValueError):
            return 0

    def format_size(self) -> str:
        return format_size(self.size())

    def is_complete(self) -> bool:
        """True once the upload finished: URL recorded and length == size."""

        if not self.access_url or self.filelen is None or self.filesize is None:
            return False
        try:
            return int(self.filelen) == int(self.filesize)
        except (TypeError, ValueError):
            return False

    def content_matches(self, local_path: str | Path, algorithm: str = "md5") -> bool:
        if not self.sha or not Path(local_path).is_file():
            return False
        return self.sha.upper() == file_digest(local_path, algorithm).upper()

    def url(self, **options: Any) -> str:
        return self.bucket.url_for(self.path, **options)

    def download(self, destination: str | Path, **options: Any) -> str:
        return self.bucket.download_from(self, destination, **options)


@dataclass(eq=False)
class DirectoryResource(ResourceOperator):
    """A directory (common prefix) in a bucket."""

    type: ClassVar[str] = "dir"

    def upload(self, file_name: str, file_src: str | Path, **options: Any) -> FileResource:
        return self.bucket.upload_to(self.path, file_name, file_src, **options)

    def list(self, **options: Any):
        return self.bucket.list_at(self.path, **options)

    ls = list

    def tree(self, **options: Any):
        return self.bucket.tree_at(self.path, **options)

    def create_folder(self, dir_name: str, **options: Any) -> DirectoryResource:
        return self.bucket.create_folder_at(f"{self.path}{dir_name}", **options)

    mkdir = create_folder

    def list_count(self, **options: Any) -> dict[str, int]:
        return self.bucket.list_count_at(self.path, **options)

    def count(self) -> int:
        return self.bucket.count_at(self.path)

    size = count

    def count_files(self) -> int:
        return self.bucket.count_files_at(self.path)

    def count_dirs(self) -> int:
        return self.bucket.count_dirs_at(self.path)


def _entry_attrs(raw: object) -> dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValidationError(f"Listing entry must be a mapping, got {type(raw).__name__}")
    missing = [key for key in REQUIRED_ENTRY_KEYS if key not in raw]
    if missing:
        raise ValidationError(f"Listing entry {raw.get('name')!r} is missing {', '.join(missing)}")
    return {key: raw.get(key) for key in OPTIONAL_ATTRS}


def classify(raw: Mapping[str, Any], bucket: Any, base_path: str) -> ResourceOperator:
    """Wrap a raw listing entry found under ``base_path``.

    An entry carrying ``filesize`` (including ``0``) is a file, anything else
    is a directory.
    """

    attrs = _entry_attrs(raw)
    name = raw.get("name")
    if not isinstance(name, str):
        raise ValidationError("Listing entry is missing a name")
    is_file = raw.get("filesize") is not None
    resource_cls = FileResource if is_file else DirectoryResource
    return resource_cls(
        bucket=bucket,
        path=join_list_path(base_path, name, is_file=is_file),
        name=name,
        ctime=raw["ctime"],
        mtime=raw["mtime"],
        **attrs,
    )


def resource_from_entry(raw: Mapping[str, Any], bucket: Any, path: str) -> ResourceOperator:
    """Wrap a stat entry whose full ``path`` is already known."""

    attrs = _entry_attrs(raw)
    is_file = raw.get("filesize") is not None
    resource_cls = FileResource if is_file else DirectoryResource
    return resource_cls(
        bucket=bucket,
        path=normalize_path(path),
        name=raw.get("name") or "",
        ctime=raw["ctime"],
        mtime=raw["mtime"],
        **attrs,
    )
