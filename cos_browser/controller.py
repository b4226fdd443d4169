from __future__ import annotations
"""Connection management: profiles in, bucket handles out."""

import logging
from typing import Callable

from .bucket import Bucket
from .profiles import ConnectionProfile, ProfileStorage
from .services import CosListingService
from .settings import ClientSettings, SettingsStorage

LOGGER = logging.getLogger(__name__)

ServiceFactory = Callable[..., CosListingService]


class NotConnectedError(RuntimeError):
    """Raised when a bucket is opened before connecting."""


class CosBrowserController:
    """Coordinates saved profiles, settings and the :class:`CosListingService`."""

    def __init__(
        self,
        service_factory: ServiceFactory | None = None,
        storage: ProfileStorage | None = None,
        settings_storage: SettingsStorage | None = None,
    ):
        self._service_factory = service_factory or CosListingService
        self._storage = storage or ProfileStorage()
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._service: CosListingService | None = None
        self._profiles: list[ConnectionProfile] = self._storage.load()
        self._selected_profile: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._service is not None

    @property
    def selected_profile(self) -> str | None:
        return self._selected_profile

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    def save_settings(self, settings: ClientSettings) -> None:
        self._settings = settings
        self._settings_storage.save(settings)

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        if original_name and original_name != profile.name:
            self._profiles = [p for p in self._profiles if p.name != original_name]
        self._upsert_profile(profile)
        self._persist_profiles()

    def delete_profile(self, name: str) -> None:
        before = len(self._profiles)
        self._profiles = [p for p in self._profiles if p.name != name]
        if len(self._profiles) == before:
            raise ValueError(f"Profile '{name}' does not exist")
        if self._selected_profile == name:
            self._selected_profile = None
        self._persist_profiles()

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def connect_with_profile(self, name: str) -> list[str]:
        profile = self.get_profile(name)
        buckets = self.connect(
            endpoint_url=profile.endpoint_url,
            access_key=profile.access_key,
            secret_key=profile.secret_key,
            region=profile.region,
        )
        self._selected_profile = name
        return buckets

    def connect(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region: str = "",
    ) -> list[str]:
        """Connect to an endpoint and return its bucket names."""

        LOGGER.debug("Connecting to %s", endpoint_url)
        service = self._service_factory(
            endpoint_url=endpoint_url,
            access_key=access_key,
            secret_key=secret_key,
            region=region or None,
        )
        buckets = service.list_buckets()
        self._service = service
        LOGGER.debug("Connected to %s (%d buckets)", endpoint_url, len(buckets))
        return buckets

    def disconnect(self) -> None:
        self._service = None
        self._selected_profile = None

    def refresh_buckets(self) -> list[str]:
        return self._require_connection().list_buckets()

    def open_bucket(self, bucket_name: str) -> Bucket:
        return Bucket(self._require_connection(), bucket_name, self._settings)

    def _require_connection(self) -> CosListingService:
        if self._service is None:
            raise NotConnectedError("Not connected to COS")
        return self._service

    def _upsert_profile(self, profile: ConnectionProfile) -> None:
        for idx, existing in enumerate(self._profiles):
            if existing.name == profile.name:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.append(profile)

    def _persist_profiles(self) -> None:
        self._storage.save(self._profiles)
