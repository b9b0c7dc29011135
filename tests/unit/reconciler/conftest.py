"""Fixtures for reconciler tests."""

from __future__ import annotations

import pytest

from nscert_controller.core.config.domain import DomainConfig
from nscert_controller.core.config.network import NetworkConfig
from nscert_controller.core.config.snapshot import ConfigStore
from tests.unit.reconciler.fakes import TEST_CERT_CLASS, ReconcilerHarness


@pytest.fixture
def config_store() -> ConfigStore:
    """Auto-TLS on, default template, example.com as the only domain."""
    return ConfigStore(
        network=NetworkConfig(auto_tls=True, certificate_class=TEST_CERT_CLASS),
        domain=DomainConfig(),
    )


@pytest.fixture
def harness(config_store: ConfigStore) -> ReconcilerHarness:
    """A reconciler over empty fakes."""
    return ReconcilerHarness.build(config_store)
