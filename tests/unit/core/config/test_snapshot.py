"""Unit tests for the configuration snapshot and store."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from nscert_controller.controller.configmap import ManualConfigWatcher
from nscert_controller.core.config.domain import DOMAIN_CONFIG_NAME, DomainConfig
from nscert_controller.core.config.network import NETWORK_CONFIG_NAME, NetworkConfig
from nscert_controller.core.config.snapshot import ConfigSnapshot, ConfigStore
from nscert_controller.core.exceptions import ConfigInvalidError


@pytest.mark.unit
class TestConfigSnapshot:
    """Tests for ConfigSnapshot."""

    def test_build(self) -> None:
        """Both ConfigMaps contribute to the snapshot."""
        snapshot = ConfigSnapshot.build(
            NetworkConfig(auto_tls=True, certificate_class="c"),
            DomainConfig.from_config_map({"default.com": ""}),
        )
        assert snapshot.auto_tls is True
        assert snapshot.certificate_class == "c"
        assert snapshot.resolve_domain({}) == "default.com"

    def test_frozen(self) -> None:
        """Snapshots are immutable."""
        snapshot = ConfigSnapshot()
        with pytest.raises(ValidationError):
            snapshot.auto_tls = True  # type: ignore[misc]


@pytest.mark.unit
class TestConfigStore:
    """Tests for ConfigStore."""

    def test_initial_snapshot(self) -> None:
        """A new store publishes defaults: auto-TLS off, example.com."""
        snapshot = ConfigStore().current()
        assert snapshot.auto_tls is False
        assert snapshot.resolve_domain({}) == "example.com"

    def test_network_update(self) -> None:
        """A config-network change keeps the domain settings."""
        store = ConfigStore()
        store.on_update(DOMAIN_CONFIG_NAME, {"default.com": ""})
        snapshot = store.on_update(NETWORK_CONFIG_NAME, {"autoTLS": "Enabled"})

        assert snapshot is store.current()
        assert snapshot.auto_tls is True
        assert snapshot.resolve_domain({}) == "default.com"

    def test_invalid_update_keeps_previous(self) -> None:
        """A bad payload raises and leaves the old snapshot published."""
        store = ConfigStore()
        store.on_update(NETWORK_CONFIG_NAME, {"autoTLS": "Enabled"})
        before = store.current()

        with pytest.raises(ConfigInvalidError):
            store.on_update(NETWORK_CONFIG_NAME, {"autoTLS": "bogus"})

        assert store.current() is before

    def test_unknown_config_map_ignored(self) -> None:
        """Other ConfigMaps do not publish a new snapshot."""
        store = ConfigStore()
        listener = MagicMock()
        store.add_listener(listener)
        before = store.current()

        assert store.on_update("config-other", {"a": "b"}) is before
        listener.assert_not_called()

    def test_listeners_called_with_snapshot(self) -> None:
        """Listeners receive each newly published snapshot."""
        store = ConfigStore()
        listener = MagicMock()
        store.add_listener(listener)

        snapshot = store.on_update(NETWORK_CONFIG_NAME, {"autoTLS": "true"})

        listener.assert_called_once_with(snapshot)

    def test_handle_config_change_swallows_later_invalid(self) -> None:
        """Once loaded, invalid configuration is logged and the last good one kept."""
        store = ConfigStore()
        store.handle_config_change(DOMAIN_CONFIG_NAME, {"default.com": ""})
        listener = MagicMock()
        store.add_listener(listener)

        store.handle_config_change(DOMAIN_CONFIG_NAME, {"a.com": "", "b.com": ""})

        listener.assert_not_called()
        assert store.current().resolve_domain({}) == "default.com"

    def test_handle_config_change_raises_on_first_invalid(self) -> None:
        """An invalid first payload raises instead of falling back to defaults."""
        store = ConfigStore()
        listener = MagicMock()
        store.add_listener(listener)

        with pytest.raises(ConfigInvalidError):
            store.handle_config_change(
                NETWORK_CONFIG_NAME,
                {"autoTLS": "Enabled", "domainTemplate": "{{.Nmae}}.{{.Namespace}}.{{.Domain}}"},
            )

        listener.assert_not_called()
        assert not store.is_loaded(NETWORK_CONFIG_NAME)
        assert store.current().auto_tls is False

    def test_is_loaded_tracks_each_config_map(self) -> None:
        """Each ConfigMap counts as loaded after its first successful update."""
        store = ConfigStore()
        store.on_update(NETWORK_CONFIG_NAME, None)

        assert store.is_loaded(NETWORK_CONFIG_NAME)
        assert not store.is_loaded(DOMAIN_CONFIG_NAME)

    def test_watch_configs(self) -> None:
        """Both ConfigMaps flow from a watcher into the store."""
        store = ConfigStore()
        watcher = ManualConfigWatcher()
        store.watch_configs(watcher)

        assert watcher.watched_names == [DOMAIN_CONFIG_NAME, NETWORK_CONFIG_NAME]

        watcher.on_change(NETWORK_CONFIG_NAME, {"autoTLS": "Enabled"})
        assert store.current().auto_tls is False
        watcher.start(threading.Event())
        assert store.current().auto_tls is True
