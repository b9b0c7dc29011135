"""Immutable configuration snapshot and its single-writer store."""

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, Field

from nscert_controller.core.config.domain import (
    DOMAIN_CONFIG_NAME,
    DomainConfig,
    DomainEntry,
    resolve,
)
from nscert_controller.core.config.network import (
    DEFAULT_CERTIFICATE_CLASS,
    NETWORK_CONFIG_NAME,
    NetworkConfig,
)
from nscert_controller.core.exceptions import ConfigInvalidError
from nscert_controller.core.template import DEFAULT_DOMAIN_TEMPLATE

if TYPE_CHECKING:
    from nscert_controller.controller.configmap import ConfigWatcher

logger = structlog.get_logger()

SnapshotListener = Callable[["ConfigSnapshot"], None]


class ConfigSnapshot(BaseModel):
    """Point-in-time view of everything the reconciler reads from config."""

    model_config = ConfigDict(frozen=True)

    domain_template: str = Field(default=DEFAULT_DOMAIN_TEMPLATE)
    auto_tls: bool = Field(default=False)
    certificate_class: str = Field(default=DEFAULT_CERTIFICATE_CLASS)
    domains: tuple[DomainEntry, ...] = Field(default_factory=tuple)

    @classmethod
    def build(cls, network: NetworkConfig, domain: DomainConfig) -> ConfigSnapshot:
        """Combine the two parsed ConfigMaps."""
        return cls(
            domain_template=network.domain_template,
            auto_tls=network.auto_tls,
            certificate_class=network.certificate_class,
            domains=domain.domains,
        )

    def resolve_domain(self, labels: Mapping[str, str]) -> str | None:
        """Resolve the domain for a namespace's labels."""
        return resolve(labels, self.domains)


class ConfigStore:
    """Holds the current ConfigSnapshot and rebuilds it on ConfigMap changes.

    There is one writer (the ConfigMap watcher thread) and many readers (the
    reconcile workers). A snapshot is published by swapping a single
    reference, so readers see either the old or the new snapshot, never a
    mix of both.
    """

    def __init__(
        self,
        network: NetworkConfig | None = None,
        domain: DomainConfig | None = None,
    ) -> None:
        self._network = network or NetworkConfig()
        self._domain = domain or DomainConfig()
        self._snapshot = ConfigSnapshot.build(self._network, self._domain)
        self._write_lock = threading.Lock()
        self._listeners: list[SnapshotListener] = []
        self._loaded: set[str] = set()
        self._log = logger.bind(entity="config_store")

    def current(self) -> ConfigSnapshot:
        """Return the latest published snapshot."""
        return self._snapshot

    def add_listener(self, listener: SnapshotListener) -> None:
        """Register a callback invoked after every successful publish."""
        self._listeners.append(listener)

    def on_update(self, name: str, data: Mapping[str, str] | None) -> ConfigSnapshot:
        """Parse one ConfigMap and publish a new snapshot.

        Args:
            name: ConfigMap name (config-network or config-domain).
            data: ConfigMap data.

        Returns:
            The newly published snapshot, or the current one if ``name`` is
            not a ConfigMap this store tracks.

        Raises:
            ConfigInvalidError: If the data does not parse. The current
                snapshot is left in place and listeners are not called.
        """
        with self._write_lock:
            network, domain = self._network, self._domain
            if name == NETWORK_CONFIG_NAME:
                network = NetworkConfig.from_config_map(data)
            elif name == DOMAIN_CONFIG_NAME:
                domain = DomainConfig.from_config_map(data)
            else:
                self._log.debug("ignoring_config_map", name=name)
                return self._snapshot

            snapshot = ConfigSnapshot.build(network, domain)
            self._network, self._domain = network, domain
            self._snapshot = snapshot
            self._loaded.add(name)

        self._log.info(
            "published_config_snapshot",
            source=name,
            auto_tls=snapshot.auto_tls,
            domain_template=snapshot.domain_template,
            domains=[entry.domain for entry in snapshot.domains],
        )
        for listener in list(self._listeners):
            listener(snapshot)
        return snapshot

    def is_loaded(self, name: str) -> bool:
        """Whether ConfigMap ``name`` has been applied successfully at least once."""
        return name in self._loaded

    def handle_config_change(self, name: str, data: Mapping[str, str] | None) -> None:
        """Watcher callback: apply a change.

        Until a ConfigMap has loaded once, an invalid payload is raised so the
        watcher's initial load fails and the controller refuses to start on
        built-in defaults. Afterwards invalid payloads are logged and the last
        good snapshot stays published.

        Raises:
            ConfigInvalidError: If the first payload for ``name`` is invalid.
        """
        try:
            self.on_update(name, data)
        except ConfigInvalidError as e:
            if not self.is_loaded(name):
                raise
            self._log.error(
                "invalid_config_rejected",
                name=name,
                error=e.message,
            )

    def watch_configs(self, watcher: ConfigWatcher) -> None:
        """Subscribe to both ConfigMaps on a watcher."""
        watcher.watch(NETWORK_CONFIG_NAME, self.handle_config_change)
        watcher.watch(DOMAIN_CONFIG_NAME, self.handle_config_change)
