"""Wildcard Certificate manager.

Certificates are custom resources, so every call goes through the
``CustomObjectsApi`` and exchanges plain dicts with the API server.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from nscert_controller.integrations.kubernetes.models.certificate import (
    CERTIFICATE_GROUP,
    CERTIFICATE_PLURAL,
    CERTIFICATE_VERSION,
    WILDCARD_DOMAIN_LABEL,
    Certificate,
)
from nscert_controller.services.kubernetes.base import K8sBaseManager


class CertificateManager(K8sBaseManager):
    """CRUD and watch operations for wildcard Certificates.

    This is the write path of the reconciler. Reads during reconciliation go
    through the informer cache instead.
    """

    _entity_name = "certificate"

    # =========================================================================
    # Reads
    # =========================================================================

    def list_certificates(
        self,
        namespace: str | None = None,
        *,
        label_selector: str | None = WILDCARD_DOMAIN_LABEL,
    ) -> tuple[list[Certificate], str | None]:
        """List Certificates in one namespace or across the cluster.

        Args:
            namespace: Namespace to list, or None for all namespaces.
            label_selector: Label selector, by default every certificate
                carrying the wildcard-domain label.

        Returns:
            The certificates and the list resourceVersion.
        """
        self._log.debug("listing_certificates", namespace=namespace)
        kwargs: dict[str, Any] = {}
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            if namespace:
                result = self._client.custom_objects.list_namespaced_custom_object(
                    CERTIFICATE_GROUP,
                    CERTIFICATE_VERSION,
                    namespace,
                    CERTIFICATE_PLURAL,
                    **kwargs,
                )
            else:
                result = self._client.custom_objects.list_cluster_custom_object(
                    CERTIFICATE_GROUP,
                    CERTIFICATE_VERSION,
                    CERTIFICATE_PLURAL,
                    **kwargs,
                )
        except Exception as e:
            self._handle_api_error(e, "Certificate", None, namespace)

        items: list[dict[str, Any]] = result.get("items", [])
        certs = [Certificate.from_k8s_object(item) for item in items]
        resource_version = (result.get("metadata") or {}).get("resourceVersion")
        self._log.debug("listed_certificates", count=len(certs), namespace=namespace)
        return certs, resource_version

    def watch_certificates(
        self,
        resource_version: str | None,
        timeout_seconds: int,
        *,
        label_selector: str | None = WILDCARD_DOMAIN_LABEL,
    ) -> Iterator[tuple[str, Certificate]]:
        """Stream Certificate events across all namespaces.

        Yields:
            ``(event_type, certificate)`` pairs.

        Raises:
            KubernetesGoneError: When the resourceVersion has expired.
        """
        from kubernetes import watch

        watcher = watch.Watch()
        kwargs: dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if resource_version:
            kwargs["resource_version"] = resource_version
        if label_selector:
            kwargs["label_selector"] = label_selector
        try:
            for event in watcher.stream(
                self._client.custom_objects.list_cluster_custom_object,
                CERTIFICATE_GROUP,
                CERTIFICATE_VERSION,
                CERTIFICATE_PLURAL,
                **kwargs,
            ):
                obj = event.get("object")
                if not obj or event.get("type") == "BOOKMARK":
                    continue
                yield str(event.get("type", "")), Certificate.from_k8s_object(obj)
        except Exception as e:
            self._handle_api_error(e, "Certificate", None, None)
        finally:
            watcher.stop()

    # =========================================================================
    # Writes
    # =========================================================================

    def create_certificate(self, cert: Certificate) -> Certificate:
        """Create a Certificate.

        Returns:
            The certificate as stored by the API server.
        """
        ns = self._resolve_namespace(cert.namespace)
        self._log.debug("creating_certificate", name=cert.name, namespace=ns)
        try:
            result = self._client.custom_objects.create_namespaced_custom_object(
                CERTIFICATE_GROUP,
                CERTIFICATE_VERSION,
                ns,
                CERTIFICATE_PLURAL,
                cert.to_k8s_object(),
            )
        except Exception as e:
            self._handle_api_error(e, "Certificate", cert.name, ns)
        self._log.info("created_certificate", name=cert.name, namespace=ns)
        return Certificate.from_k8s_object(result)

    def update_certificate(self, cert: Certificate) -> Certificate:
        """Replace a Certificate, guarded by its resourceVersion.

        Returns:
            The certificate as stored by the API server.
        """
        ns = self._resolve_namespace(cert.namespace)
        self._log.debug("updating_certificate", name=cert.name, namespace=ns)
        try:
            result = self._client.custom_objects.replace_namespaced_custom_object(
                CERTIFICATE_GROUP,
                CERTIFICATE_VERSION,
                ns,
                CERTIFICATE_PLURAL,
                cert.name,
                cert.to_k8s_object(),
            )
        except Exception as e:
            self._handle_api_error(e, "Certificate", cert.name, ns)
        self._log.info("updated_certificate", name=cert.name, namespace=ns)
        return Certificate.from_k8s_object(result)

    def delete_certificate(self, name: str, namespace: str | None = None) -> None:
        """Delete a Certificate."""
        ns = self._resolve_namespace(namespace)
        self._log.debug("deleting_certificate", name=name, namespace=ns)
        try:
            self._client.custom_objects.delete_namespaced_custom_object(
                CERTIFICATE_GROUP,
                CERTIFICATE_VERSION,
                ns,
                CERTIFICATE_PLURAL,
                name,
            )
        except Exception as e:
            self._handle_api_error(e, "Certificate", name, ns)
        self._log.info("deleted_certificate", name=name, namespace=ns)
