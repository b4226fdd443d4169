from __future__ import annotations
"""Bucket handle: the remote operations resources delegate to."""
import logging
from pathlib import Path
from typing import Any, Callable, Optional

from .errors import NotFoundError, ValidationError
from .listing import ResourceIterator
from .models import ResourceTree
from .resources import DirectoryResource, FileResource, ResourceOperator, resource_from_entry
from .services import CosListingService
from .settings import ClientSettings
from .utils import as_dir_path, join_list_path, normalize_path

LOGGER = logging.getLogger(__name__)


class Bucket:
    """Operations against one named bucket, addressed by ``/``-separated paths."""

    def __init__(
        self,
        service: CosListingService,
        bucket_name: str,
        settings: ClientSettings | None = None,
    ):
        if not bucket_name:
            raise ValidationError("bucket_name cannot be empty")
        self._service = service
        self._bucket_name = bucket_name
        self._settings = settings or ClientSettings()

    def __repr__(self) -> str:
        return f"Bucket({self._bucket_name!r})"

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    @property
    def service(self) -> CosListingService:
        return self._service

    def root(self) -> DirectoryResource:
        return self.stat_at("/")

    def exists_at(self, path: str) -> bool:
        try:
            self.stat_at(path)
        except NotFoundError:
            return False
        return True

    def stat_at(self, path: str) -> ResourceOperator:
        path = normalize_path(path)
        LOGGER.debug("Stat '%s' in bucket '%s'", path, self._bucket_name)
        entry = self._service.head(self._bucket_name, path)
        return resource_from_entry(entry, self, path)

    def update_at(self, path: str, biz_attr: str) -> None:
        path = normalize_path(path)
        LOGGER.debug("Updating biz_attr of '%s' in bucket '%s'", path, self._bucket_name)
        self._service.update_biz_attr(self._bucket_name, path, biz_attr)

    def delete_at(self, path: str) -> None:
        path = normalize_path(path)
        LOGGER.debug("Deleting '%s' from bucket '%s'", path, self._bucket_name)
        self._service.delete(self._bucket_name, path)

    def list_at(self, path: str = "/", **options: Any) -> ResourceIterator:
        """Lazily list the directory at ``path``.

        Options are passed to the listing service: ``num`` (page size,
        defaults to the configured page size), ``pattern`` (``both``,
        ``dir_only`` or ``file_only``), ``prefix`` and ``context``.
        """

        list_options = {"num": self._settings.page_size}
        list_options.update(options)
        return ResourceIterator(self, path, list_options)

    def tree_at(self, path: str = "/", *, depth: int | None = None, **options: Any) -> ResourceTree:
        """Walk ``path`` down to ``depth`` directory levels."""

        if depth is None:
            depth = self._settings.tree_depth
        root = self.stat_at(as_dir_path(path))
        return self._build_tree(root, depth, options)

    def _build_tree(self, resource: ResourceOperator, depth: int, options: dict[str, Any]) -> ResourceTree:
        node = ResourceTree(resource=resource)
        if depth <= 0:
            return node
        for child in self.list_at(resource.path, **options):
            if isinstance(child, DirectoryResource):
                node.children.append(self._build_tree(child, depth - 1, options))
            else:
                node.children.append(ResourceTree(resource=child))
        return node

    def create_folder_at(self, path: str, *, biz_attr: str = "") -> DirectoryResource:
        path = as_dir_path(path)
        LOGGER.debug("Creating folder '%s' in bucket '%s'", path, self._bucket_name)
        entry = self._service.create_folder(self._bucket_name, path, biz_attr)
        return resource_from_entry(entry, self, path)

    def list_count_at(self, path: str = "/", **options: Any) -> dict[str, int]:
        """Count entries under ``path`` across every page.

        Page responses only carry per-page counts, so the totals are summed
        while walking a fresh listing.
        """

        dirs = files = 0
        for resource in self.list_at(path, **options):
            if isinstance(resource, FileResource):
                files += 1
            else:
                dirs += 1
        return {"total": dirs + files, "files": files, "dirs": dirs}

    def count_at(self, path: str = "/") -> int:
        return self.list_count_at(path)["total"]

    def count_files_at(self, path: str = "/") -> int:
        return self.list_count_at(path, pattern="file_only")["files"]

    def count_dirs_at(self, path: str = "/") -> int:
        return self.list_count_at(path, pattern="dir_only")["dirs"]

    def url_for(self, path: str, *, expires_in: int | None = None, signed: bool = True) -> str:
        if expires_in is None:
            expires_in = self._settings.url_expires_in
        return self._service.generate_url(
            self._bucket_name,
            normalize_path(path),
            expires_in=expires_in,
            signed=signed,
        )

    def upload_to(
        self,
        path: str,
        name: str,
        source: str | Path,
        *,
        biz_attr: str = "",
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> FileResource:
        """Upload ``source`` as ``name`` inside the directory ``path``."""

        target = join_list_path(path, name, is_file=True)
        LOGGER.debug("Uploading '%s' to '%s' in bucket '%s'", source, target, self._bucket_name)
        self._service.upload_file(
            self._bucket_name,
            target,
            str(source),
            biz_attr=biz_attr,
            progress_callback=progress_callback,
            cancel_requested=cancel_requested,
        )
        return self.stat_at(target)

    def download_from(
        self,
        resource: ResourceOperator,
        destination: str | Path,
        *,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> str:
        if not isinstance(resource, FileResource):
            raise ValidationError(f"Only files can be downloaded, '{resource.path}' is a {resource.type}")
        LOGGER.debug("Downloading '%s' from bucket '%s' to '%s'", resource.path, self._bucket_name, destination)
        self._service.download_file(
            self._bucket_name,
            resource.path,
            str(destination),
            progress_callback=progress_callback,
            cancel_requested=cancel_requested,
        )
        return str(destination)
