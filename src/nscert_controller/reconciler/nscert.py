"""Namespace wildcard certificate reconciler.

For every namespace the reconciler converges the cluster to one of two
states:

* ``DISABLED``: auto-TLS is off, or the namespace carries the opt-out label.
  No wildcard certificate may exist in the namespace.
* ``ENABLED``: exactly one certificate, named ``<namespace>.<domain>``,
  covering the wildcard DNS name rendered from the domain template.

Reads go through informer caches; writes go to the API server. Each pass
captures one configuration snapshot and uses it throughout.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from nscert_controller.core.exceptions import InternalError, TemplateInvalidError
from nscert_controller.core.template import is_compatible, render
from nscert_controller.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesNotFoundError,
)
from nscert_controller.integrations.kubernetes.models.certificate import (
    CERTIFICATE_CLASS_ANNOTATION,
    WILDCARD_DOMAIN_LABEL,
)
from nscert_controller.reconciler.names import certificate_name
from nscert_controller.reconciler.resources import (
    is_owned_by,
    make_wildcard_certificate,
    namespace_owner_reference,
)
from nscert_controller.services.kubernetes.event_recorder import EventType

if TYPE_CHECKING:
    from nscert_controller.core.config.snapshot import ConfigSnapshot, ConfigStore
    from nscert_controller.integrations.kubernetes.models.certificate import Certificate
    from nscert_controller.integrations.kubernetes.models.namespace import NamespaceInfo

logger = structlog.get_logger()


class DesiredState(StrEnum):
    """What a namespace should have after reconciliation."""

    DISABLED = "disabled"
    ENABLED = "enabled"


def desired_state(namespace: NamespaceInfo, snapshot: ConfigSnapshot) -> DesiredState:
    """Compute the state for a namespace under a configuration snapshot."""
    if not snapshot.auto_tls or namespace.wildcard_cert_disabled:
        return DesiredState.DISABLED
    return DesiredState.ENABLED


def split_key(key: str) -> str:
    """Extract the namespace name from a work queue key.

    Namespaces are cluster scoped, so keys are normally just the name. A
    ``namespace/name`` key is accepted and its name part used.

    Raises:
        ValueError: If the key has more than two parts or an empty name.
    """
    parts = key.split("/")
    if len(parts) > 2 or not parts[-1]:
        raise ValueError(f"unexpected key format: {key!r}")
    return parts[-1]


class NamespaceCertReconciler:
    """Reconciles the wildcard Certificate of one namespace per call.

    Args:
        namespace_lister: Cached namespace reads, ``get(name)``.
        certificate_lister: Cached certificate reads, ``get(name, namespace)``
            and ``list(namespace)``.
        certificate_client: Certificate writes, ``create_certificate``,
            ``update_certificate`` and ``delete_certificate``.
        recorder: Event recorder with ``event`` and ``eventf``.
        config_store: Source of the current ConfigSnapshot.
    """

    def __init__(
        self,
        namespace_lister: Any,
        certificate_lister: Any,
        certificate_client: Any,
        recorder: Any,
        config_store: ConfigStore,
    ) -> None:
        self._namespaces = namespace_lister
        self._certificates = certificate_lister
        self._client = certificate_client
        self._recorder = recorder
        self._config_store = config_store
        self._log = logger.bind(entity="nscert_reconciler")

    def reconcile(self, key: str) -> None:
        """Reconcile the namespace identified by ``key``.

        Raises:
            InternalError: On failures that should be retried with backoff.
                A matching ``InternalError`` warning event is recorded on the
                namespace first.
        """
        log = self._log.bind(key=key)
        try:
            name = split_key(key)
        except ValueError as e:
            log.error("invalid_resource_key", error=str(e))
            return

        try:
            namespace = self._namespaces.get(name)
        except KubernetesNotFoundError:
            log.debug("namespace_not_found")
            return

        snapshot = self._config_store.current()
        try:
            self._reconcile_namespace(namespace, snapshot, log.bind(namespace=name))
        except InternalError as e:
            self._recorder.event(namespace, EventType.WARNING, "InternalError", e.message)
            raise

    # =========================================================================
    # State handling
    # =========================================================================

    def _reconcile_namespace(
        self,
        namespace: NamespaceInfo,
        snapshot: ConfigSnapshot,
        log: Any,
    ) -> None:
        owned = [
            c
            for c in self._certificates.list(namespace.name, WILDCARD_DOMAIN_LABEL)
            if is_owned_by(c, namespace)
        ]

        state = desired_state(namespace, snapshot)
        log.debug("reconciling_namespace", state=str(state), owned=len(owned))

        if state is DesiredState.DISABLED:
            for cert in owned:
                self._delete(namespace, cert, log)
            return

        domain = snapshot.resolve_domain(namespace.labels)
        if domain is None:
            raise InternalError(
                f"no domain configured for namespace {namespace.name}; "
                "config-domain has no matching or fallback entry"
            )

        try:
            dns_name = render(snapshot.domain_template, namespace.name, domain)
        except TemplateInvalidError as e:
            log.info(
                "skipping_invalid_domain_template",
                template=snapshot.domain_template,
                error=e.message,
            )
            return

        desired_name = certificate_name(namespace.name, domain)
        for cert in owned:
            if cert.name != desired_name:
                self._delete(namespace, cert, log)

        existing = self._get_existing(desired_name, namespace.name)
        if existing is None:
            desired = make_wildcard_certificate(
                namespace, dns_name, domain, snapshot.certificate_class
            )
            self._create(namespace, desired, log)
        elif not is_compatible(existing.dns_names, dns_name):
            self._update(namespace, existing, dns_name, domain, snapshot, log)
        else:
            log.debug("certificate_up_to_date", name=desired_name)

    def _get_existing(self, name: str, namespace: str) -> Certificate | None:
        try:
            cert: Certificate = self._certificates.get(name, namespace)
        except KubernetesNotFoundError:
            return None
        return cert

    # =========================================================================
    # Writes
    # =========================================================================

    def _create(self, namespace: NamespaceInfo, desired: Certificate, log: Any) -> None:
        try:
            self._client.create_certificate(desired)
        except KubernetesError as e:
            log.warning("certificate_creation_failed", name=desired.name, error=str(e))
            self._recorder.eventf(
                namespace,
                EventType.WARNING,
                "CreationFailed",
                "Failed to create Knative certificate %s/%s: %s",
                desired.namespace,
                desired.name,
                e,
            )
            raise InternalError(f"failed to create namespace certificate: {e}") from e

        log.info("created_namespace_certificate", name=desired.name, dns_names=desired.dns_names)
        self._recorder.eventf(
            namespace,
            EventType.NORMAL,
            "Created",
            "Created Knative Certificate %s/%s",
            desired.namespace,
            desired.name,
        )

    def _update(
        self,
        namespace: NamespaceInfo,
        existing: Certificate,
        dns_name: str,
        domain: str,
        snapshot: ConfigSnapshot,
        log: Any,
    ) -> None:
        updated = existing.model_copy(
            update={
                "dns_names": [dns_name],
                "labels": {**existing.labels, WILDCARD_DOMAIN_LABEL: domain},
                "annotations": {
                    CERTIFICATE_CLASS_ANNOTATION: snapshot.certificate_class,
                    **existing.annotations,
                },
                "owner_references": existing.owner_references
                or [namespace_owner_reference(namespace)],
            }
        )
        try:
            self._client.update_certificate(updated)
        except KubernetesError as e:
            log.warning("certificate_update_failed", name=existing.name, error=str(e))
            self._recorder.eventf(
                namespace,
                EventType.WARNING,
                "UpdateFailed",
                "Failed to update Knative certificate %s/%s: %s",
                existing.namespace,
                existing.name,
                e,
            )
            raise InternalError(f"failed to update namespace certificate: {e}") from e

        log.info(
            "updated_namespace_certificate",
            name=existing.name,
            old_dns_names=existing.dns_names,
            dns_names=updated.dns_names,
        )
        self._recorder.eventf(
            namespace,
            EventType.NORMAL,
            "Updated",
            "Updated Knative Certificate %s/%s",
            existing.namespace,
            existing.name,
        )

    def _delete(self, namespace: NamespaceInfo, cert: Certificate, log: Any) -> None:
        try:
            self._client.delete_certificate(cert.name, cert.namespace)
        except KubernetesNotFoundError:
            log.debug("certificate_already_deleted", name=cert.name)
            return
        except KubernetesError as e:
            log.warning("certificate_deletion_failed", name=cert.name, error=str(e))
            self._recorder.eventf(
                namespace,
                EventType.WARNING,
                "DeletionFailed",
                "Failed to delete Knative certificate %s/%s: %s",
                cert.namespace,
                cert.name,
                e,
            )
            raise InternalError(f"failed to delete namespace certificate: {e}") from e

        log.info("deleted_namespace_certificate", name=cert.name)
        self._recorder.eventf(
            namespace,
            EventType.NORMAL,
            "Deleted",
            "Deleted Knative Certificate %s/%s",
            cert.namespace,
            cert.name,
        )
