"""Kubernetes resource models."""

from nscert_controller.integrations.kubernetes.models.base import K8sEntityBase, OwnerReference
from nscert_controller.integrations.kubernetes.models.certificate import (
    CERTIFICATE_CLASS_ANNOTATION,
    WILDCARD_DOMAIN_LABEL,
    Certificate,
)
from nscert_controller.integrations.kubernetes.models.namespace import (
    DISABLE_WILDCARD_CERT_LABEL,
    NamespaceInfo,
)

__all__ = [
    "CERTIFICATE_CLASS_ANNOTATION",
    "DISABLE_WILDCARD_CERT_LABEL",
    "WILDCARD_DOMAIN_LABEL",
    "Certificate",
    "K8sEntityBase",
    "NamespaceInfo",
    "OwnerReference",
]
