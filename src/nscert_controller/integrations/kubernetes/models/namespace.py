"""Namespace model."""

from __future__ import annotations

from typing import Any, ClassVar

from nscert_controller.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_timestamp,
    _safe_get,
)

# Namespaces carrying this label with value "true" get no wildcard certificate
DISABLE_WILDCARD_CERT_LABEL = "networking.knative.dev/disableWildcardCert"


class NamespaceInfo(K8sEntityBase):
    """The parts of a Namespace the controller reads."""

    api_version: ClassVar[str] = "v1"
    kind: ClassVar[str] = "Namespace"

    @classmethod
    def from_k8s_object(cls, obj: Any) -> NamespaceInfo:
        """Create from a kubernetes V1Namespace object."""
        labels = _safe_get(obj, "metadata", "labels")
        annotations = _safe_get(obj, "metadata", "annotations")
        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            uid=_safe_get(obj, "metadata", "uid"),
            resource_version=_safe_get(obj, "metadata", "resource_version"),
            creation_timestamp=_get_timestamp(_safe_get(obj, "metadata", "creation_timestamp")),
            labels=dict(labels) if labels else {},
            annotations=dict(annotations) if annotations else {},
        )

    @property
    def wildcard_cert_disabled(self) -> bool:
        """Whether the namespace opted out of the wildcard certificate."""
        return self.labels.get(DISABLE_WILDCARD_CERT_LABEL, "").lower() == "true"
