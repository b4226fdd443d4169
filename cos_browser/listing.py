from __future__ import annotations
"""Lazy iteration over a paged directory listing."""
from collections import deque
import logging
from typing import Any, Iterator, Optional

from .errors import ValidationError
from .models import ListingCounts, ListingCursor
from .resources import ResourceOperator, classify
from .utils import as_dir_path

LOGGER = logging.getLogger(__name__)


def _page_count(response: dict[str, Any], key: str) -> int:
    try:
        return int(response.get(key) or 0)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Listing page has a non-numeric {key}: {response.get(key)!r}") from exc


class ResourceIterator:
    """Yields the resources under a directory, fetching pages on demand.

    Pages are requested from ``bucket.service`` only when the buffered
    entries run out. Once the service reports no more pages and the buffer
    is drained the iterator stays exhausted; build a new one to restart.
    Not safe to share between threads.
    """

    def __init__(self, bucket, path: str, options: dict[str, Any] | None = None):
        options = dict(options or {})
        context = options.pop("context", None)
        has_more = options.pop("has_more", True)
        self._bucket = bucket
        self._cursor = ListingCursor(
            base_path=as_dir_path(path),
            options=options,
            context=context or None,
            has_more=has_more is not False,
        )

    @property
    def bucket(self):
        return self._bucket

    @property
    def path(self) -> str:
        return self._cursor.base_path

    @property
    def context(self) -> Optional[str]:
        return self._cursor.context

    @property
    def has_more(self) -> bool:
        return self._cursor.has_more

    @property
    def counts(self) -> ListingCounts:
        """Counts of the most recently fetched page (not running totals)."""

        return ListingCounts(
            dir_count=self._cursor.dir_count,
            file_count=self._cursor.file_count,
        )

    def __iter__(self) -> Iterator[ResourceOperator]:
        return self

    def __next__(self) -> ResourceOperator:
        resource = self.produce_next()
        if resource is None:
            raise StopIteration
        return resource

    def produce_next(self) -> Optional[ResourceOperator]:
        """Return the next resource, or ``None`` once the listing is exhausted."""

        cursor = self._cursor
        while not cursor.buffer:
            if not cursor.has_more:
                return None
            self._fetch()
        return cursor.buffer.popleft()

    def _fetch(self) -> None:
        cursor = self._cursor
        options = cursor.request_options(self._bucket.bucket_name)
        LOGGER.debug(
            "Listing '%s' in bucket '%s' (context=%r)",
            cursor.base_path,
            self._bucket.bucket_name,
            cursor.context,
        )
        response = self._bucket.service.list(cursor.base_path, options)

        # read the whole page before touching the cursor so a failure
        # leaves it ready to retry the same page
        resources = deque(
            classify(raw, self._bucket, cursor.base_path) for raw in response.get("infos") or []
        )
        dir_count = _page_count(response, "dir_count")
        file_count = _page_count(response, "file_count")
        context = response.get("context") or None
        has_more = bool(response.get("has_more"))

        cursor.buffer = resources
        cursor.dir_count = dir_count
        cursor.file_count = file_count
        cursor.context = context
        cursor.has_more = has_more
        LOGGER.debug(
            "Fetched %d entries from '%s' (has_more=%s)",
            len(resources),
            cursor.base_path,
            cursor.has_more,
        )
