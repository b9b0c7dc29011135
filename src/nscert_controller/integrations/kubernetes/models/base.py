"""Base models for Kubernetes resources held in the controller caches."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class K8sEntityBase(BaseModel):
    """Base class for cached Kubernetes objects.

    Instances are frozen: informer caches hand the same object to every
    reader, so changes go through ``model_copy(update=...)``.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    name: str = Field(description="Resource name")
    namespace: str | None = Field(default=None, description="Resource namespace")
    uid: str | None = Field(default=None, description="Kubernetes UID")
    resource_version: str | None = Field(default=None, description="Object resourceVersion")
    creation_timestamp: str | None = Field(default=None, description="Creation time")
    labels: dict[str, str] = Field(default_factory=dict, description="Resource labels")
    annotations: dict[str, str] = Field(default_factory=dict, description="Resource annotations")

    @property
    def key(self) -> str:
        """Cache key: ``namespace/name`` for namespaced objects, else ``name``."""
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name


class OwnerReference(BaseModel):
    """Kubernetes owner reference."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    api_version: str
    kind: str
    name: str
    uid: str | None = None
    controller: bool = False
    block_owner_deletion: bool = False

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> OwnerReference:
        """Create from a camelCase owner reference dict."""
        return cls(
            api_version=obj.get("apiVersion", ""),
            kind=obj.get("kind", ""),
            name=obj.get("name", ""),
            uid=obj.get("uid"),
            controller=bool(obj.get("controller", False)),
            block_owner_deletion=bool(obj.get("blockOwnerDeletion", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase form the API server expects."""
        ref: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "controller": self.controller,
            "blockOwnerDeletion": self.block_owner_deletion,
        }
        if self.uid:
            ref["uid"] = self.uid
        return ref


def _safe_get(obj: Any, *attrs: str, default: Any = None) -> Any:
    """Safely traverse nested attributes on kubernetes SDK objects."""
    current = obj
    for attr in attrs:
        if current is None:
            return default
        current = getattr(current, attr, None)
    return current if current is not None else default


def _get_timestamp(obj: Any) -> str | None:
    """Extract ISO timestamp string from a datetime or string."""
    if obj is None:
        return None
    if isinstance(obj, str):
        return obj
    if isinstance(obj, datetime):
        return obj.isoformat()
    return str(obj)
