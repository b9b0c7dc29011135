"""Kubernetes service module.

Resource managers for the objects the controller reads and writes.
"""

from nscert_controller.services.kubernetes.certificate_manager import CertificateManager
from nscert_controller.services.kubernetes.event_recorder import (
    EventType,
    KubernetesEventRecorder,
)
from nscert_controller.services.kubernetes.namespace_manager import NamespaceManager

__all__ = [
    "CertificateManager",
    "EventType",
    "KubernetesEventRecorder",
    "NamespaceManager",
]
