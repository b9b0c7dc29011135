"""Namespace reads and watches."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from nscert_controller.integrations.kubernetes.models.namespace import NamespaceInfo
from nscert_controller.services.kubernetes.base import K8sBaseManager


class NamespaceManager(K8sBaseManager):
    """Reads Namespaces through ``CoreV1Api``."""

    _entity_name = "namespace"

    def list_namespaces(self) -> tuple[list[NamespaceInfo], str | None]:
        """List all namespaces.

        Returns:
            The namespaces and the list resourceVersion to watch from.
        """
        self._log.debug("listing_namespaces")
        try:
            result = self._client.core_v1.list_namespace()
        except Exception as e:
            self._handle_api_error(e, "Namespace", None, None)
        items = [NamespaceInfo.from_k8s_object(ns) for ns in result.items]
        resource_version = getattr(getattr(result, "metadata", None), "resource_version", None)
        self._log.debug("listed_namespaces", count=len(items))
        return items, resource_version

    def watch_namespaces(
        self,
        resource_version: str | None,
        timeout_seconds: int,
    ) -> Iterator[tuple[str, NamespaceInfo]]:
        """Stream namespace events starting at ``resource_version``.

        Yields:
            ``(event_type, namespace)`` pairs, event_type being ADDED,
            MODIFIED or DELETED.

        Raises:
            KubernetesGoneError: When the resourceVersion has expired.
        """
        from kubernetes import watch

        watcher = watch.Watch()
        kwargs: dict[str, Any] = {"timeout_seconds": timeout_seconds}
        if resource_version:
            kwargs["resource_version"] = resource_version
        try:
            for event in watcher.stream(self._client.core_v1.list_namespace, **kwargs):
                obj = event.get("object")
                if obj is None or event.get("type") == "BOOKMARK":
                    continue
                yield str(event.get("type", "")), NamespaceInfo.from_k8s_object(obj)
        except Exception as e:
            self._handle_api_error(e, "Namespace", None, None)
        finally:
            watcher.stop()
