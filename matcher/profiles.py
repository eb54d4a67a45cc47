"""Player profiles and their persisted registry."""

from __future__ import annotations

import logging
import threading
import uuid
from typing import Callable, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .storage import BlobStorage, MemoryBlobStorage

logger = logging.getLogger(__name__)

PROFILES_BLOB = "profiles.json"
DEFAULT_PROFILE_NAME = "Player 1"
REGISTRY_VERSION = 1


class ProfileError(Exception):
    """Base class for profile store errors."""


class InvalidInput(ProfileError, ValueError):
    """Raised when a profile name is empty after trimming."""


class NotFound(ProfileError, LookupError):
    """Raised when no profile carries the requested id."""


class PersistenceError(ProfileError):
    """Raised when the registry could not be read or written.

    A failed write keeps the change in memory; a failed read leaves the store
    unloaded so nothing is saved over the unread blob.
    """


class Profile(BaseModel):
    id: str = Field(min_length=1)
    name: str
    high_score: int = Field(0, ge=0)
    total_points: int = Field(0, ge=0)
    games_played: int = Field(0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Profile name must not be empty.")
        return value

    def record(self, points: int) -> None:
        self.high_score = max(self.high_score, points)
        self.total_points += points
        self.games_played += 1


class ProfileRegistry(BaseModel):
    version: int = REGISTRY_VERSION
    profiles: List[Profile] = Field(default_factory=list)
    active_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_references(self) -> ProfileRegistry:
        ids = [profile.id for profile in self.profiles]
        if len(ids) != len(set(ids)):
            raise ValueError("Profile ids must be unique.")
        if self.active_id is not None and self.active_id not in ids:
            self.active_id = None
        return self

    def find(self, profile_id: str) -> Optional[Profile]:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None


def encode_registry(registry: ProfileRegistry) -> bytes:
    return registry.model_dump_json(indent=2).encode("utf-8")


def decode_registry(blob: Optional[bytes]) -> ProfileRegistry:
    """Parse a persisted registry; anything unreadable yields an empty one."""
    if not blob or not blob.strip():
        return ProfileRegistry()
    try:
        return ProfileRegistry.model_validate_json(blob)
    except ValidationError as exc:
        logger.warning("Discarding unreadable profile registry: %s", exc.errors()[0]["msg"])
        return ProfileRegistry()


class ProfileStore:
    """Owns the profile registry and keeps its persisted copy current."""

    def __init__(
        self,
        storage: Optional[BlobStorage] = None,
        *,
        blob_name: str = PROFILES_BLOB,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.storage = storage if storage is not None else MemoryBlobStorage()
        self.blob_name = blob_name
        self._new_id = id_factory or (lambda: uuid.uuid4().hex)
        self._registry = ProfileRegistry()
        self._lock = threading.RLock()
        self.loaded = False
        self.load_error: Optional[PersistenceError] = None

    @classmethod
    def open(cls, storage: BlobStorage, *, default_name: str = DEFAULT_PROFILE_NAME, **kwargs) -> ProfileStore:
        """Load from storage and seed a default profile when nothing was saved.

        Raises :class:`PersistenceError` when the blob exists but cannot be read.
        """
        store = cls(storage, **kwargs)
        store.load()
        store.ensure_default_profile(default_name)
        return store

    # Persistence -------------------------------------------------------

    def load(self) -> ProfileRegistry:
        """Replace the in-memory registry with the persisted one.

        A missing, empty or corrupt blob loads as an empty registry. A read
        failure raises :class:`PersistenceError` and keeps the store unloaded.
        """
        with self._lock:
            try:
                blob = self.storage.read(self.blob_name)
            except OSError as exc:
                self.load_error = PersistenceError(f"Could not read {self.blob_name}: {exc}")
                logger.warning("%s", self.load_error)
                raise self.load_error from exc
            self._registry = decode_registry(blob)
            self.loaded = True
            self.load_error = None
            logger.info("Loaded %d profiles", len(self._registry.profiles))
            return self.registry

    def save(self) -> bytes:
        with self._lock:
            if not self.loaded:
                raise PersistenceError(f"Refusing to overwrite {self.blob_name} before it has been loaded.")
            data = encode_registry(self._registry)
            try:
                self.storage.write(self.blob_name, data)
            except OSError as exc:
                raise PersistenceError(f"Could not persist {self.blob_name}: {exc}") from exc
            return data

    # Mutations ---------------------------------------------------------

    def add_profile(self, name: str) -> str:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInput("Profile name must not be empty.")
        with self._lock:
            self._ensure_loaded()
            profile = Profile(id=self._new_id(), name=name)
            self._registry.profiles.append(profile)
            if self._registry.active_id is None:
                self._registry.active_id = profile.id
            logger.info("Added profile %r (%s)", profile.name, profile.id)
            self.save()
            return profile.id

    def select_profile(self, profile_id: str) -> Profile:
        with self._lock:
            self._ensure_loaded()
            profile = self._registry.find(profile_id)
            if profile is None:
                raise NotFound(f"No profile with id {profile_id!r}.")
            self._registry.active_id = profile.id
            self.save()
            return profile.model_copy()

    def record_result(self, points: int) -> Optional[Profile]:
        """Credit ``points`` to the active profile; returns the updated profile."""
        if points <= 0:
            return None
        with self._lock:
            self._ensure_loaded()
            profile = self._active()
            if profile is None:
                return None
            profile.record(points)
            logger.info("Recorded %d points for %r", points, profile.name)
            self.save()
            return profile.model_copy()

    def ensure_default_profile(self, name: str = DEFAULT_PROFILE_NAME) -> Optional[str]:
        with self._lock:
            self._ensure_loaded()
            if not self._registry.profiles:
                return self.add_profile(name)
            return self._registry.active_id

    # Accessors ---------------------------------------------------------

    @property
    def registry(self) -> ProfileRegistry:
        with self._lock:
            return self._registry.model_copy(deep=True)

    @property
    def profiles(self) -> Tuple[Profile, ...]:
        with self._lock:
            return tuple(profile.model_copy() for profile in self._registry.profiles)

    @property
    def active_profile(self) -> Optional[Profile]:
        with self._lock:
            profile = self._active()
            return profile.model_copy() if profile is not None else None

    def get(self, profile_id: str) -> Profile:
        with self._lock:
            profile = self._registry.find(profile_id)
            if profile is None:
                raise NotFound(f"No profile with id {profile_id!r}.")
            return profile.model_copy()

    def leaderboard(self) -> List[Profile]:
        """Profiles by best score, highest first; ties keep creation order."""
        return sorted(self.profiles, key=lambda profile: -profile.high_score)

    def _ensure_loaded(self) -> None:
        # Mutations always start from the persisted registry.
        if not self.loaded:
            self.load()

    def _active(self) -> Optional[Profile]:
        if self._registry.active_id is None:
            return None
        return self._registry.find(self._registry.active_id)
