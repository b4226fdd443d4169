from __future__ import annotations
"""Client settings persistence helpers."""

from dataclasses import dataclass
import json
import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)


@dataclass
class ClientSettings:
    """Simple container for persistent client settings."""

    page_size: int = 20
    tree_depth: int = 5
    url_expires_in: int = 3600


def _positive_int(data: dict, name: str) -> int:
    default = getattr(ClientSettings, name)
    try:
        value = int(data.get(name, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


class SettingsStorage:
    """JSON-backed persistence for :class:`ClientSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".pycosb_settings.json"
        self._path = Path(storage_path)

    def load(self) -> ClientSettings:
        if not self._path.exists():
            return ClientSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning("Ignoring unreadable settings file %s", self._path)
            return ClientSettings()
        if not isinstance(data, dict):
            return ClientSettings()
        return ClientSettings(
            page_size=_positive_int(data, "page_size"),
            tree_depth=_positive_int(data, "tree_depth"),
            url_expires_in=_positive_int(data, "url_expires_in"),
        )

    def save(self, settings: ClientSettings) -> None:
        payload = {
            "page_size": max(int(settings.page_size), 1),
            "tree_depth": max(int(settings.tree_depth), 1),
            "url_expires_in": max(int(settings.url_expires_in), 1),
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError:
            # Persist best-effort; ignore filesystem issues.
            LOGGER.warning("Could not write settings file %s", self._path)
            return
