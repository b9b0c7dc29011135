"""Unit tests for K8sBaseManager."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from nscert_controller.integrations.kubernetes.exceptions import KubernetesNotFoundError
from nscert_controller.services.kubernetes.base import K8sBaseManager


class TestK8sBaseManager:
    """Tests for K8sBaseManager base class."""

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_init(self, mock_k8s_client: MagicMock) -> None:
        """Manager should initialize with client."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._client == mock_k8s_client
        assert manager._log is not None

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_resolve_namespace_with_explicit_namespace(self, mock_k8s_client: MagicMock) -> None:
        """Should return explicit namespace when provided."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._resolve_namespace("test-namespace") == "test-namespace"

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_resolve_namespace_with_none(self, mock_k8s_client: MagicMock) -> None:
        """Should return default namespace when None provided."""
        manager = K8sBaseManager(mock_k8s_client)

        assert manager._resolve_namespace(None) == "knative-serving"

    @pytest.mark.unit
    @pytest.mark.kubernetes
    def test_handle_api_error_raises_translated(self, mock_k8s_client: MagicMock) -> None:
        """Should raise the translated exception chained to the original."""
        original = Exception("API error")
        translated = KubernetesNotFoundError(resource_type="Certificate", resource_name="x")
        mock_k8s_client.translate_api_exception.return_value = translated
        manager = K8sBaseManager(mock_k8s_client)

        with pytest.raises(KubernetesNotFoundError) as exc_info:
            manager._handle_api_error(original, "Certificate", "x", "ns")

        assert exc_info.value.__cause__ is original
        mock_k8s_client.translate_api_exception.assert_called_once_with(
            original,
            resource_type="Certificate",
            resource_name="x",
            namespace="ns",
        )
