"""Unit tests for the Namespace model."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from nscert_controller.integrations.kubernetes.models.namespace import (
    DISABLE_WILDCARD_CERT_LABEL,
    NamespaceInfo,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestNamespaceInfo:
    """Test NamespaceInfo."""

    def test_from_k8s_object(self) -> None:
        """Metadata is copied from the SDK object."""
        obj = MagicMock()
        obj.metadata.name = "foo"
        obj.metadata.uid = "uid-1"
        obj.metadata.resource_version = "42"
        obj.metadata.creation_timestamp = datetime(2024, 1, 1, tzinfo=UTC)
        obj.metadata.labels = {"team": "a"}
        obj.metadata.annotations = None

        ns = NamespaceInfo.from_k8s_object(obj)

        assert ns.name == "foo"
        assert ns.namespace is None
        assert ns.key == "foo"
        assert ns.uid == "uid-1"
        assert ns.resource_version == "42"
        assert ns.creation_timestamp == "2024-01-01T00:00:00+00:00"
        assert ns.labels == {"team": "a"}
        assert ns.annotations == {}

    def test_kind(self) -> None:
        """Namespaces are core v1 objects."""
        assert NamespaceInfo.api_version == "v1"
        assert NamespaceInfo.kind == "Namespace"

    @pytest.mark.parametrize(
        ("labels", "disabled"),
        [
            ({}, False),
            ({DISABLE_WILDCARD_CERT_LABEL: "true"}, True),
            ({DISABLE_WILDCARD_CERT_LABEL: "True"}, True),
            ({DISABLE_WILDCARD_CERT_LABEL: "false"}, False),
            ({DISABLE_WILDCARD_CERT_LABEL: "yes"}, False),
        ],
    )
    def test_wildcard_cert_disabled(self, labels: dict[str, str], disabled: bool) -> None:
        """Only the value "true" opts a namespace out."""
        assert NamespaceInfo(name="foo", labels=labels).wildcard_cert_disabled is disabled
