"""Builders for the objects the reconciler writes."""

from __future__ import annotations

from nscert_controller.integrations.kubernetes.models.base import OwnerReference
from nscert_controller.integrations.kubernetes.models.certificate import (
    CERTIFICATE_CLASS_ANNOTATION,
    WILDCARD_DOMAIN_LABEL,
    Certificate,
)
from nscert_controller.integrations.kubernetes.models.namespace import NamespaceInfo
from nscert_controller.reconciler.names import certificate_name, secret_name


def namespace_owner_reference(namespace: NamespaceInfo) -> OwnerReference:
    """Controller reference making the namespace own (and garbage collect) a cert."""
    return OwnerReference(
        api_version=NamespaceInfo.api_version,
        kind=NamespaceInfo.kind,
        name=namespace.name,
        uid=namespace.uid,
        controller=True,
        block_owner_deletion=True,
    )


def make_wildcard_certificate(
    namespace: NamespaceInfo,
    dns_name: str,
    domain: str,
    certificate_class: str,
) -> Certificate:
    """Build the desired wildcard Certificate for a namespace.

    Args:
        namespace: Owning namespace.
        dns_name: Rendered wildcard DNS name.
        domain: Resolved domain suffix.
        certificate_class: Value for the certificate class annotation.

    Returns:
        A Certificate with no resourceVersion, ready to be created.
    """
    name = certificate_name(namespace.name, domain)
    return Certificate(
        name=name,
        namespace=namespace.name,
        labels={WILDCARD_DOMAIN_LABEL: domain},
        annotations={CERTIFICATE_CLASS_ANNOTATION: certificate_class},
        owner_references=[namespace_owner_reference(namespace)],
        dns_names=[dns_name],
        secret_name=secret_name(name),
    )


def is_owned_by(cert: Certificate, namespace: NamespaceInfo) -> bool:
    """Whether ``cert`` is a wildcard certificate controlled by ``namespace``."""
    ref = cert.controller_ref
    return (
        cert.wildcard_domain is not None
        and ref is not None
        and ref.kind == NamespaceInfo.kind
        and ref.name == namespace.name
    )
