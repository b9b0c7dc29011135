"""ConfigMap watchers delivering raw configuration to the ConfigStore."""

from __future__ import annotations

import random
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

import structlog

from nscert_controller.integrations.kubernetes.exceptions import (
    KubernetesError,
    KubernetesGoneError,
)

if TYPE_CHECKING:
    from nscert_controller.integrations.kubernetes.client import KubernetesClient

logger = structlog.get_logger()

ConfigCallback = Callable[[str, Mapping[str, str] | None], None]


class ConfigWatcher(ABC):
    """Delivers ConfigMap data to callbacks registered per ConfigMap name."""

    def __init__(self) -> None:
        self._callbacks: dict[str, list[ConfigCallback]] = defaultdict(list)

    def watch(self, name: str, callback: ConfigCallback) -> None:
        """Call ``callback(name, data)`` whenever ConfigMap ``name`` changes."""
        self._callbacks[name].append(callback)

    def dispatch(self, name: str, data: Mapping[str, str] | None) -> None:
        """Hand ``data`` to every callback registered for ``name``."""
        for callback in self._callbacks.get(name, []):
            callback(name, data)

    @property
    def watched_names(self) -> list[str]:
        """Names with at least one callback."""
        return sorted(self._callbacks)

    @abstractmethod
    def start(self, stop_event: threading.Event) -> None:
        """Deliver the current data for every watched name, then keep watching."""


class ManualConfigWatcher(ConfigWatcher):
    """Watcher driven by explicit ``on_change`` calls.

    Changes made before ``start`` are buffered and delivered by it, so a
    caller can seed initial configuration before the controller runs.
    """

    def __init__(self) -> None:
        super().__init__()
        self._pending: dict[str, Mapping[str, str] | None] = {}
        self._started = False

    def on_change(self, name: str, data: Mapping[str, str] | None) -> None:
        """Report new data for ConfigMap ``name``."""
        if not self._started:
            self._pending[name] = data
            return
        self.dispatch(name, data)

    def start(self, stop_event: threading.Event) -> None:
        """Flush buffered changes; later changes are delivered immediately."""
        self._started = True
        pending, self._pending = self._pending, {}
        for name, data in pending.items():
            self.dispatch(name, data)


class KubernetesConfigMapWatcher(ConfigWatcher):
    """Watches ConfigMaps in the controller's system namespace.

    ``start`` reads every watched ConfigMap synchronously so the first
    reconciliation already sees real configuration; a daemon thread then
    follows changes. A missing ConfigMap is delivered as empty data, which
    selects the built-in defaults.
    """

    def __init__(
        self,
        client: KubernetesClient,
        namespace: str,
        *,
        timeout_seconds: int = 600,
    ) -> None:
        super().__init__()
        self._client = client
        self._namespace = namespace
        self._timeout_seconds = timeout_seconds
        self._resource_version: str | None = None
        self._log = logger.bind(entity="configmap_watcher", namespace=namespace)

    def _list(self) -> dict[str, Mapping[str, str]]:
        try:
            result = self._client.core_v1.list_namespaced_config_map(namespace=self._namespace)
        except Exception as e:
            raise self._client.translate_api_exception(
                e, resource_type="ConfigMap", namespace=self._namespace
            ) from e
        self._resource_version = getattr(result.metadata, "resource_version", None)
        return {cm.metadata.name: dict(cm.data or {}) for cm in result.items}

    def start(self, stop_event: threading.Event) -> None:
        """Load the watched ConfigMaps, then watch for changes in the background."""
        current = self._list()
        for name in self.watched_names:
            if name not in current:
                self._log.warning("config_map_missing_using_defaults", name=name)
            self.dispatch(name, current.get(name))
        thread = threading.Thread(
            target=self._run,
            args=(stop_event,),
            name="configmap-watcher",
            daemon=True,
        )
        thread.start()

    def _stream(self) -> Iterator[dict[str, Any]]:
        from kubernetes import watch

        watcher = watch.Watch()
        kwargs: dict[str, Any] = {
            "namespace": self._namespace,
            "timeout_seconds": self._timeout_seconds,
        }
        if self._resource_version:
            kwargs["resource_version"] = self._resource_version
        try:
            yield from watcher.stream(self._client.core_v1.list_namespaced_config_map, **kwargs)
        except Exception as e:
            raise self._client.translate_api_exception(
                e, resource_type="ConfigMap", namespace=self._namespace
            ) from e
        finally:
            watcher.stop()

    def _run(self, stop_event: threading.Event) -> None:
        backoff = 1
        watched = set(self.watched_names)
        while not stop_event.is_set():
            try:
                for event in self._stream():
                    obj = event.get("object")
                    metadata = getattr(obj, "metadata", None)
                    if metadata is None:
                        continue
                    self._resource_version = metadata.resource_version
                    if metadata.name not in watched:
                        continue
                    event_type = event.get("type")
                    data = None if event_type == "DELETED" else dict(obj.data or {})
                    self._log.debug(
                        "config_map_changed", name=metadata.name, event_type=event_type
                    )
                    self.dispatch(metadata.name, data)
                    if stop_event.is_set():
                        break
                backoff = 1
            except KubernetesGoneError:
                self._log.info("config_watch_expired_restarting")
                self._resource_version = None
            except KubernetesError as e:
                self._log.warning("config_watch_failed", error=str(e), backoff=backoff)
                stop_event.wait(backoff * (0.5 + random.random()))  # noqa: S311
                backoff = min(backoff * 2, 30)
            except Exception:
                self._log.exception("config_watch_crashed", backoff=backoff)
                stop_event.wait(backoff * (0.5 + random.random()))  # noqa: S311
                backoff = min(backoff * 2, 30)
