"""Unit tests for Kubernetes client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from urllib3.exceptions import MaxRetryError, ProtocolError

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


@pytest.fixture
def client() -> KubernetesClient:
    """Create a client with configuration loading mocked out."""
    with patch("kubernetes.config"):
        return KubernetesClient(ControllerConfig(system_namespace="serving"))


def _api_exception(status: int, reason: str = "Reason") -> Exception:
    from kubernetes.client import ApiException

    return ApiException(status=status, reason=reason)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesClientInitialization:
    """Test KubernetesClient initialization."""

    @patch("kubernetes.config")
    def test_init_with_default_config(self, mock_config: MagicMock) -> None:
        """Test client initialization with default config."""
        config = ControllerConfig()
        client = KubernetesClient(config)

        assert client._config == config
        assert client._retries == 3
        mock_config.load_kube_config.assert_called_once_with(config_file=None, context=None)
        assert client.get_current_context() == "default"

    @patch("kubernetes.config")
    def test_init_with_context(self, mock_config: MagicMock) -> None:
        """Test client initialization with explicit kubeconfig and context."""
        client = KubernetesClient(
            ControllerConfig(kubeconfig="/path/to/config", context="test-context")
        )

        mock_config.load_kube_config.assert_called_once_with(
            config_file="/path/to/config",
            context="test-context",
        )
        assert client.get_current_context() == "test-context"

    @patch("kubernetes.config")
    def test_init_fallback_to_incluster(self, mock_config: MagicMock) -> None:
        """Test client falls back to in-cluster config."""
        from kubernetes.config import ConfigException

        mock_config.load_kube_config.side_effect = ConfigException("Not found")

        client = KubernetesClient(ControllerConfig())

        mock_config.load_incluster_config.assert_called_once()
        assert client.get_current_context() == "in-cluster"

    @patch("kubernetes.config")
    def test_init_connection_error(self, mock_config: MagicMock) -> None:
        """Test client raises KubernetesConnectionError when config loading fails."""
        from kubernetes.config import ConfigException

        mock_config.load_kube_config.side_effect = ConfigException("No config")
        mock_config.load_incluster_config.side_effect = ConfigException("Not in cluster")

        with pytest.raises(KubernetesConnectionError, match="Cannot load Kubernetes"):
            KubernetesClient(ControllerConfig())


@pytest.mark.unit
@pytest.mark.kubernetes
class TestLazyApis:
    """Test lazy API group accessors."""

    def test_core_v1_cached(self, client: KubernetesClient) -> None:
        """The CoreV1Api instance is created once."""
        with patch("kubernetes.client.CoreV1Api") as api_cls:
            first = client.core_v1
            second = client.core_v1
        assert first is second
        api_cls.assert_called_once()

    def test_custom_objects_cached(self, client: KubernetesClient) -> None:
        """The CustomObjectsApi instance is created once."""
        with patch("kubernetes.client.CustomObjectsApi") as api_cls:
            assert client.custom_objects is client.custom_objects
        api_cls.assert_called_once()

    def test_close_drops_cached_apis(self, client: KubernetesClient) -> None:
        """close() forgets API instances."""
        with patch("kubernetes.client.CoreV1Api") as api_cls:
            _ = client.core_v1
            client.close()
            _ = client.core_v1
        assert api_cls.call_count == 2

    def test_context_manager_closes(self, client: KubernetesClient) -> None:
        """Leaving the with-block closes the client."""
        with patch.object(client, "close") as close, client as entered:
            assert entered is client
        close.assert_called_once()


@pytest.mark.unit
@pytest.mark.kubernetes
class TestTranslateApiException:
    """Test error translation."""

    def test_passes_kubernetes_errors_through(self) -> None:
        """Already-translated errors are returned as is."""
        err = KubernetesGoneError()
        assert KubernetesClient.translate_api_exception(err) is err

    def test_generic_exception(self) -> None:
        """Non-API exceptions become a plain KubernetesError."""
        result = KubernetesClient.translate_api_exception(
            ValueError("bad"), resource_type="Certificate", resource_name="x"
        )
        assert type(result) is KubernetesError
        assert result.message == "bad"
        assert result.resource_name == "x"

    @pytest.mark.parametrize(
        "error",
        [
            MaxRetryError(None, "/api/v1/namespaces", reason=ConnectionRefusedError()),
            ProtocolError("Connection aborted."),
        ],
        ids=["max-retries", "protocol"],
    )
    def test_transport_errors_are_connection_errors(self, error: Exception) -> None:
        """urllib3 transport failures become connection errors."""
        result = KubernetesClient.translate_api_exception(error, resource_type="Namespace")
        assert isinstance(result, KubernetesConnectionError)
        assert result.original_error is error

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth(self, status: int) -> None:
        """401 and 403 become auth errors."""
        result = KubernetesClient.translate_api_exception(_api_exception(status, "Forbidden"))
        assert isinstance(result, KubernetesAuthError)
        assert result.status_code == status
        assert result.reason == "Forbidden"

    def test_not_found(self) -> None:
        """404 becomes NotFound with the resource context."""
        result = KubernetesClient.translate_api_exception(
            _api_exception(404),
            resource_type="Certificate",
            resource_name="ns.example.com",
            namespace="ns",
        )
        assert isinstance(result, KubernetesNotFoundError)
        assert result.namespace == "ns"

    def test_conflict(self) -> None:
        """409 becomes a conflict."""
        result = KubernetesClient.translate_api_exception(_api_exception(409))
        assert isinstance(result, KubernetesConflictError)

    def test_gone(self) -> None:
        """410 becomes Gone so watches re-list."""
        result = KubernetesClient.translate_api_exception(_api_exception(410, "Expired"))
        assert isinstance(result, KubernetesGoneError)
        assert result.message == "Expired"

    @pytest.mark.parametrize("status", [400, 422])
    def test_validation(self, status: int) -> None:
        """400 and 422 become validation errors."""
        result = KubernetesClient.translate_api_exception(_api_exception(status))
        assert isinstance(result, KubernetesValidationError)
        assert result.status_code == status

    def test_other_status(self) -> None:
        """Any other status becomes a generic error carrying the status."""
        result = KubernetesClient.translate_api_exception(_api_exception(500, ""))
        assert type(result) is KubernetesError
        assert result.status_code == 500
        assert result.message == "Kubernetes API error: 500"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestRetryAndConnection:
    """Test retry decorator and connection checks."""

    def test_retries_connection_errors(self, client: KubernetesClient) -> None:
        """Connection errors are retried up to retry_attempts times."""
        func = MagicMock(side_effect=[KubernetesConnectionError(), "ok"])
        with patch("time.sleep"):
            result = client.make_retry_decorator()(func)()
        assert result == "ok"
        assert func.call_count == 2

    def test_gives_up_after_attempts(self, client: KubernetesClient) -> None:
        """The last connection error is re-raised."""
        func = MagicMock(side_effect=KubernetesConnectionError())
        with patch("time.sleep"), pytest.raises(KubernetesConnectionError):
            client.make_retry_decorator()(func)()
        assert func.call_count == 3

    def test_retries_unreachable_api_server(self, client: KubernetesClient) -> None:
        """A list call failing at the transport layer is retried."""
        calls = MagicMock(side_effect=[MaxRetryError(None, "/api/v1/namespaces"), "ok"])

        def list_func() -> object:
            try:
                return calls()
            except Exception as e:
                raise client.translate_api_exception(e, resource_type="Namespace") from e

        with patch("time.sleep"):
            result = client.make_retry_decorator()(list_func)()

        assert result == "ok"
        assert calls.call_count == 2

    def test_other_errors_not_retried(self, client: KubernetesClient) -> None:
        """Only connection errors are retried."""
        func = MagicMock(side_effect=KubernetesNotFoundError())
        with pytest.raises(KubernetesNotFoundError):
            client.make_retry_decorator()(func)()
        assert func.call_count == 1


    def test_check_connection_success(self, client: KubernetesClient) -> None:
        """A version answer means connected."""
        client._version_api = MagicMock()
        assert client.check_connection() is True

    def test_check_connection_failure(self, client: KubernetesClient) -> None:
        """Any failure means not connected."""
        client._version_api = MagicMock()
        client._version_api.get_code.side_effect = Exception("down")
        assert client.check_connection() is False

    def test_default_namespace(self, client: KubernetesClient) -> None:
        """Managers default to the configured system namespace."""
        assert client.default_namespace == "serving"
