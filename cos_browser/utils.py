from __future__ import annotations
"""Path, size and digest helpers shared by the listing and resource layers."""
import hashlib
from pathlib import Path

from .errors import ValidationError

PATH_SEPARATOR = "/"
SIZE_UNITS = ("B", "KB", "MB", "GB")
SIZE_BASE = 1024
DIGEST_CHUNK_SIZE = 1024 * 1024


def format_size(size: int | None) -> str:
    """Render a byte count as ``1023B``, ``1.50KB``, ``2.00GB``...

    Bytes are always integers, larger units always carry two decimals.
    Sizes beyond the last unit stay in GB.
    """

    size_bytes = int(size or 0)
    if size_bytes < SIZE_BASE:
        return f"{size_bytes}{SIZE_UNITS[0]}"

    exponent = 0
    max_exponent = len(SIZE_UNITS) - 1
    while exponent < max_exponent and size_bytes >= SIZE_BASE ** (exponent + 1):
        exponent += 1

    value = size_bytes / SIZE_BASE**exponent
    unit = SIZE_UNITS[exponent]
    if exponent > 0:
        return f"{value:.2f}{unit}"
    return f"{value:.0f}{unit}"


def normalize_path(path: str | None) -> str:
    """Return ``path`` with a leading separator; empty and ``/`` mean root."""

    cleaned = path or ""
    if not cleaned or cleaned == PATH_SEPARATOR:
        return PATH_SEPARATOR
    if not cleaned.startswith(PATH_SEPARATOR):
        cleaned = PATH_SEPARATOR + cleaned
    return cleaned


def as_dir_path(path: str | None) -> str:
    cleaned = normalize_path(path)
    if not cleaned.endswith(PATH_SEPARATOR):
        cleaned += PATH_SEPARATOR
    return cleaned


def is_dir_path(path: str | None) -> bool:
    return normalize_path(path).endswith(PATH_SEPARATOR)


def join_list_path(base_path: str | None, name: str, *, is_file: bool = False) -> str:
    """Join a listing path and an entry name exactly as listed.

    Directories (anything not flagged ``is_file``) get a trailing separator.
    """

    if not name:
        raise ValidationError("Entry name cannot be empty")
    if PATH_SEPARATOR in name:
        raise ValidationError(f"Entry name {name!r} cannot contain {PATH_SEPARATOR!r}")
    path = f"{as_dir_path(base_path)}{name}"
    return path if is_file else path + PATH_SEPARATOR


def path_to_key(path: str | None) -> str:
    """Translate a remote path into an object key (root becomes ``""``)."""

    return normalize_path(path).lstrip(PATH_SEPARATOR)


def key_to_name(key: str) -> str:
    cleaned = key.rstrip(PATH_SEPARATOR)
    return cleaned.rsplit(PATH_SEPARATOR, 1)[-1]


def file_digest(file_path: str | Path, algorithm: str = "md5") -> str:
    digest = hashlib.new(algorithm)
    with open(file_path, "rb") as handle:
        for chunk in iter(lambda: handle.read(DIGEST_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
