"""Shared fixtures for Kubernetes service tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client.

    ``core_v1`` and ``custom_objects`` are auto-created sub-mocks;
    ``default_namespace`` is ``knative-serving``.
    """
    mock_client = MagicMock()
    mock_client.default_namespace = "knative-serving"
    return mock_client


@pytest.fixture
def certificate_body() -> dict[str, Any]:
    """A wildcard Certificate as returned by CustomObjectsApi."""
    return {
        "apiVersion": "networking.internal.knative.dev/v1alpha1",
        "kind": "Certificate",
        "metadata": {
            "name": "foo.example.com",
            "namespace": "foo",
            "resourceVersion": "3",
            "labels": {"networking.internal.knative.dev/wildcardDomain": "example.com"},
        },
        "spec": {"dnsNames": ["*.foo.example.com"], "secretName": "foo.example.com"},
    }
