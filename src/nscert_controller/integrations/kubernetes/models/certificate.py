"""Wildcard Certificate model.

Certificates are ``networking.internal.knative.dev/v1alpha1`` custom
resources, served by ``CustomObjectsApi`` as plain dicts. ``from_k8s_object``
therefore reads camelCase keys with ``dict.get()`` and ``to_k8s_object``
writes them back.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import Field

from nscert_controller.integrations.kubernetes.models.base import (
    K8sEntityBase,
    OwnerReference,
)

# networking.internal.knative.dev CRD coordinates
CERTIFICATE_GROUP = "networking.internal.knative.dev"
CERTIFICATE_VERSION = "v1alpha1"
CERTIFICATE_PLURAL = "certificates"
CERTIFICATE_KIND = "Certificate"

# Annotation telling the issuing integration which implementation to use
CERTIFICATE_CLASS_ANNOTATION = "networking.knative.dev/certificate.class"

# Label marking certificates this controller owns; value is the domain
WILDCARD_DOMAIN_LABEL = "networking.internal.knative.dev/wildcardDomain"


class Certificate(K8sEntityBase):
    """A Certificate resource requesting one or more DNS names."""

    api_version: ClassVar[str] = f"{CERTIFICATE_GROUP}/{CERTIFICATE_VERSION}"
    kind: ClassVar[str] = CERTIFICATE_KIND

    dns_names: list[str] = Field(default_factory=list, description="Requested DNS names")
    secret_name: str = Field(default="", description="Secret receiving the key pair")
    owner_references: list[OwnerReference] = Field(
        default_factory=list, description="Owner references"
    )

    @classmethod
    def from_k8s_object(cls, obj: dict[str, Any]) -> Certificate:
        """Create from a Certificate CRD dict."""
        metadata: dict[str, Any] = obj.get("metadata") or {}
        spec: dict[str, Any] = obj.get("spec") or {}
        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace"),
            uid=metadata.get("uid"),
            resource_version=metadata.get("resourceVersion"),
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=metadata.get("labels") or {},
            annotations=metadata.get("annotations") or {},
            owner_references=[
                OwnerReference.from_dict(ref) for ref in metadata.get("ownerReferences") or []
            ],
            dns_names=list(spec.get("dnsNames") or []),
            secret_name=spec.get("secretName", ""),
        )

    def to_k8s_object(self) -> dict[str, Any]:
        """Serialize to a Certificate CRD dict."""
        metadata: dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "labels": dict(self.labels),
            "annotations": dict(self.annotations),
            "ownerReferences": [ref.to_dict() for ref in self.owner_references],
        }
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return {
            "apiVersion": f"{CERTIFICATE_GROUP}/{CERTIFICATE_VERSION}",
            "kind": CERTIFICATE_KIND,
            "metadata": metadata,
            "spec": {
                "dnsNames": list(self.dns_names),
                "secretName": self.secret_name,
            },
        }

    @property
    def controller_ref(self) -> OwnerReference | None:
        """The owner reference flagged as controller, if any."""
        for ref in self.owner_references:
            if ref.controller:
                return ref
        return None

    @property
    def wildcard_domain(self) -> str | None:
        """Domain recorded by the controller, or None if not ours."""
        return self.labels.get(WILDCARD_DOMAIN_LABEL)
