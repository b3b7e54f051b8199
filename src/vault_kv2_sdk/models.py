"""
Data models for the KV2 SDK.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .envelope import parse_timestamp

SEPARATOR = "/"


def normalize_path(path: str) -> str:
    """Trim leading/trailing separators and collapse repeated ones."""
    return SEPARATOR.join(segment for segment in path.split(SEPARATOR) if segment)


def split_path(path: str) -> Tuple[str, str]:
    """Split a path into (parent, name)."""
    parent, _, name = normalize_path(path).rpartition(SEPARATOR)
    return parent, name


def join_path(*parts: str) -> str:
    return normalize_path(SEPARATOR.join(part for part in parts if part))


class SaveMode(str, Enum):
    """When a save is allowed to go through."""
    CREATE_ONLY = "create_only"
    UPDATE_IF_VERSION_MATCHES = "update_if_version_matches"
    ALWAYS_OVERWRITE = "always_overwrite"


class VersionState(str, Enum):
    """Lifecycle state of a single secret version."""
    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    DESTROYED = "destroyed"


class _WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    @field_validator("created_time", "deletion_time", "updated_time", mode="before", check_fields=False)
    @classmethod
    def _parse_timestamps(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class VersionInfo(_WireModel):
    """Per-version entry of a secret's metadata."""

    created_time: Optional[datetime] = Field(None, description="Version creation timestamp")
    deletion_time: Optional[datetime] = Field(None, description="Soft delete timestamp")
    destroyed: bool = Field(False, description="Whether the payload was destroyed")

    @property
    def state(self) -> VersionState:
        if self.destroyed:
            return VersionState.DESTROYED
        if self.deletion_time is not None:
            return VersionState.SOFT_DELETED
        return VersionState.ACTIVE


class VersionMetadata(VersionInfo):
    """Metadata returned alongside a read or a save."""

    version: int = Field(0, description="Version number")
    custom_metadata: Optional[Dict[str, str]] = Field(None, description="User supplied metadata")


class SecretMetadata(_WireModel):
    """Version history summary of a secret path (no payloads)."""

    cas_required: bool = Field(False, description="Whether saves must carry a CAS value")
    current_version: int = Field(0, description="Most recent version number")
    max_versions: int = Field(0, description="Versions kept before pruning (0 = engine default)")
    oldest_version: int = Field(0, description="Oldest version still tracked")
    created_time: Optional[datetime] = Field(None, description="Path creation timestamp")
    updated_time: Optional[datetime] = Field(None, description="Last update timestamp")
    delete_version_after: Optional[str] = Field(None, description="Automatic soft delete delay")
    custom_metadata: Optional[Dict[str, str]] = Field(None, description="User supplied metadata")
    versions: Dict[int, VersionInfo] = Field(default_factory=dict, description="Per-version entries")

    def state_of(self, version: int) -> Optional[VersionState]:
        info = self.versions.get(version)
        return info.state if info is not None else None


class EngineSettings(BaseModel):
    """Mount-wide settings of a KV2 engine."""
    model_config = ConfigDict(extra="ignore")

    max_versions: int = Field(0, description="Versions kept per secret (0 = server default)")
    cas_required: bool = Field(False, description="Whether every save must carry a CAS value")
    delete_version_after: Optional[str] = Field(None, description="Automatic soft delete delay")


class ListOptions(BaseModel):
    """Controls which names ``list`` returns and how."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    recurse: bool = Field(False, description="Descend into every child folder")
    parents_only: bool = Field(False, description="Only names that have children")
    leaves_only: bool = Field(False, description="Only names that have no children")
    full_paths: bool = Field(False, description="Prefix names with the listed path")

    @model_validator(mode="after")
    def _recurse_needs_full_paths(self) -> "ListOptions":
        if self.parents_only and self.leaves_only:
            raise ValueError("parents_only and leaves_only are mutually exclusive")
        if self.recurse and not self.full_paths:
            self.full_paths = True
        return self


class VersionedSecret(BaseModel):
    """A secret path, its attributes and the version they belong to."""
    name: str = Field(..., description="Leaf name of the secret")
    parent: str = Field("", description="Parent path, without leading or trailing separators")
    attributes: Dict[str, str] = Field(default_factory=dict, description="Secret payload")
    version: int = Field(0, description="Version as assigned by the store (0 = never saved)")
    metadata: Optional[VersionMetadata] = Field(None, description="Version metadata")

    @model_validator(mode="before")
    @classmethod
    def _split_name(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "name" not in data:
            return data
        data = dict(data)
        name = normalize_path(str(data["name"]))
        parent = normalize_path(str(data.get("parent") or ""))
        if SEPARATOR in name:
            if parent:
                raise ValueError("name must not contain a path when parent is given")
            parent, name = split_path(name)
        if not name:
            raise ValueError("name must not be empty")
        data["name"] = name
        data["parent"] = parent
        return data

    @classmethod
    def from_path(cls, path: str, attributes: Optional[Dict[str, str]] = None) -> "VersionedSecret":
        return cls(name=path, attributes=attributes or {})

    @property
    def full_path(self) -> str:
        if self.parent:
            return f"{self.parent}{SEPARATOR}{self.name}"
        return self.name

    @property
    def is_deleted(self) -> bool:
        return self.metadata is not None and self.metadata.state is VersionState.SOFT_DELETED

    @property
    def is_destroyed(self) -> bool:
        return self.metadata is not None and self.metadata.destroyed
