"""Kubernetes integration - API client, configuration and resource models."""

from nscert_controller.integrations.kubernetes.client import KubernetesClient
from nscert_controller.integrations.kubernetes.config import ControllerConfig
from nscert_controller.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesGoneError,
    KubernetesNotFoundError,
    KubernetesValidationError,
)

__all__ = [
    "ControllerConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesGoneError",
    "KubernetesNotFoundError",
    "KubernetesValidationError",
]
