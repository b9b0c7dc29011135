"""Kubernetes event recorder.

Events are the user-visible surface of reconciliation: what the controller
created, updated or deleted, and why a step failed.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from nscert_controller.services.kubernetes.base import K8sBaseManager

if TYPE_CHECKING:
    from nscert_controller.integrations.kubernetes.client import KubernetesClient
    from nscert_controller.integrations.kubernetes.models.base import K8sEntityBase

DEFAULT_COMPONENT = "nscert-controller"

# Cluster-scoped objects (Namespaces) have their events stored here
CLUSTER_SCOPED_EVENT_NAMESPACE = "default"


class EventType(StrEnum):
    """Kubernetes event type."""

    NORMAL = "Normal"
    WARNING = "Warning"


def _object_reference(obj: K8sEntityBase) -> dict[str, Any]:
    return {
        "api_version": getattr(obj, "api_version", "v1"),
        "kind": getattr(obj, "kind", type(obj).__name__),
        "name": obj.name,
        "namespace": obj.namespace,
        "uid": obj.uid,
        "resource_version": obj.resource_version,
    }


class KubernetesEventRecorder(K8sBaseManager):
    """Records core/v1 Events against cached objects.

    Recording is best effort. A failed event write is logged and dropped so
    that it never turns a successful reconciliation into a failed one.
    """

    _entity_name = "event"

    def __init__(self, client: KubernetesClient, component: str = DEFAULT_COMPONENT) -> None:
        super().__init__(client)
        self._component = component

    def event(
        self,
        obj: K8sEntityBase,
        event_type: EventType,
        reason: str,
        message: str,
    ) -> None:
        """Record an event for ``obj``."""
        from kubernetes.client import (
            CoreV1Event,
            V1EventSource,
            V1ObjectMeta,
            V1ObjectReference,
        )

        namespace = obj.namespace or CLUSTER_SCOPED_EVENT_NAMESPACE
        now = datetime.now(UTC)
        body = CoreV1Event(
            metadata=V1ObjectMeta(
                name=f"{obj.name}.{time.time_ns():x}",
                namespace=namespace,
            ),
            involved_object=V1ObjectReference(**_object_reference(obj)),
            type=str(event_type),
            reason=reason,
            message=message,
            source=V1EventSource(component=self._component),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )

        self._log.debug(
            "recording_event",
            object=obj.name,
            event_type=str(event_type),
            reason=reason,
        )
        try:
            self._client.core_v1.create_namespaced_event(namespace=namespace, body=body)
        except Exception as e:
            self._log.warning(
                "event_dropped",
                object=obj.name,
                reason=reason,
                error=str(self._client.translate_api_exception(e)),
            )

    def eventf(
        self,
        obj: K8sEntityBase,
        event_type: EventType,
        reason: str,
        message_format: str,
        *args: Any,
    ) -> None:
        """Record an event with a %-style formatted message."""
        self.event(obj, event_type, reason, message_format % args if args else message_format)
