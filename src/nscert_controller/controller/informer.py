"""List/watch caches (informers) and the listers reading from them.

An informer lists a resource once, then follows a watch from the list's
resourceVersion, keeping an in-memory copy of every object and notifying
handlers of additions, updates and deletions. The reconciler reads only from
these caches, never from the API server directly.
"""

from __future__ import annotations

import random
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import structlog

from nscert_controller.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesError,
    KubernetesGoneError,
    KubernetesNotFoundError,
)
from nscert_controller.integrations.kubernetes.models.base import K8sEntityBase
from nscert_controller.integrations.kubernetes.models.certificate import Certificate
from nscert_controller.integrations.kubernetes.models.namespace import NamespaceInfo

logger = structlog.get_logger()

T = TypeVar("T", bound=K8sEntityBase)

ListFunc = Callable[[], tuple[list[T], str | None]]
WatchFunc = Callable[[str | None, int], Iterator[tuple[str, T]]]

MAX_BACKOFF_SECONDS = 30


@dataclass
class EventHandler(Generic[T]):
    """Callbacks fired by an informer. Any of them may be omitted."""

    on_add: Callable[[T], None] | None = None
    on_update: Callable[[T, T], None] | None = None
    on_delete: Callable[[T], None] | None = None


class Informer(Generic[T]):
    """Watch-backed cache of one resource type.

    Args:
        name: Resource name for logs.
        list_func: Returns all objects and the list resourceVersion.
        watch_func: Streams ``(event_type, object)`` from a resourceVersion,
            ending after the given timeout.
        resync_seconds: Watch timeout; the watch is re-opened after it.
        retry_decorator: Optional decorator applied to ``list_func``, used
            for connection-error retries.
    """

    def __init__(
        self,
        name: str,
        list_func: ListFunc[T],
        watch_func: WatchFunc[T],
        *,
        resync_seconds: int = 600,
        retry_decorator: Callable[[Callable[..., Any]], Callable[..., Any]] | None = None,
    ) -> None:
        self.name = name
        self._list = retry_decorator(list_func) if retry_decorator else list_func
        self._watch = watch_func
        self._resync_seconds = resync_seconds

        self._items: dict[str, T] = {}
        self._lock = threading.RLock()
        self._handlers: list[EventHandler[T]] = []
        self._synced = threading.Event()
        self._resource_version: str | None = None
        self._thread: threading.Thread | None = None

        self._log = logger.bind(entity="informer", resource=name)

    # =========================================================================
    # Cache reads
    # =========================================================================

    def get(self, key: str) -> T | None:
        """Get a cached object by ``name`` or ``namespace/name`` key."""
        with self._lock:
            return self._items.get(key)

    def list(self) -> list[T]:
        """Snapshot of every cached object."""
        with self._lock:
            return list(self._items.values())

    def has_synced(self) -> bool:
        """Whether the initial list has populated the cache."""
        return self._synced.is_set()

    def wait_for_sync(self, timeout: float | None = None) -> bool:
        """Block until the initial list completes."""
        return self._synced.wait(timeout)

    def add_event_handler(self, handler: EventHandler[T]) -> None:
        """Register callbacks; they run on the informer thread."""
        self._handlers.append(handler)

    # =========================================================================
    # Cache updates
    # =========================================================================

    def replace(self, items: list[T], resource_version: str | None) -> None:
        """Replace the cache with a fresh list, notifying handlers of the diff."""
        fresh = {item.key: item for item in items}
        with self._lock:
            previous = self._items
            self._items = fresh
            self._resource_version = resource_version

        for key, item in fresh.items():
            old = previous.get(key)
            if old is None:
                self._notify_add(item)
            elif old.resource_version != item.resource_version:
                self._notify_update(old, item)
        for key, old in previous.items():
            if key not in fresh:
                self._notify_delete(old)
        self._synced.set()

    def apply(self, event_type: str, obj: T) -> None:
        """Apply one watch event to the cache."""
        with self._lock:
            old = self._items.get(obj.key)
            if event_type == "DELETED":
                self._items.pop(obj.key, None)
            else:
                self._items[obj.key] = obj
            if obj.resource_version:
                self._resource_version = obj.resource_version

        if event_type == "DELETED":
            self._notify_delete(old or obj)
        elif old is None:
            self._notify_add(obj)
        else:
            self._notify_update(old, obj)

    def _notify_add(self, obj: T) -> None:
        for handler in self._handlers:
            if handler.on_add:
                handler.on_add(obj)

    def _notify_update(self, old: T, new: T) -> None:
        for handler in self._handlers:
            if handler.on_update:
                handler.on_update(old, new)

    def _notify_delete(self, obj: T) -> None:
        for handler in self._handlers:
            if handler.on_delete:
                handler.on_delete(obj)

    # =========================================================================
    # List/watch loop
    # =========================================================================

    def start(self, stop_event: threading.Event) -> threading.Thread:
        """Run the list/watch loop on a daemon thread."""
        self._thread = threading.Thread(
            target=self.run,
            args=(stop_event,),
            name=f"informer-{self.name}",
            daemon=True,
        )
        self._thread.start()
        return self._thread

    def _relist(self) -> None:
        items, resource_version = self._list()
        self.replace(items, resource_version)
        self._log.debug("relisted", count=len(items), resource_version=resource_version)

    def run(self, stop_event: threading.Event) -> None:
        """List, then watch until ``stop_event`` is set.

        A 410 from the watch triggers a re-list. Other errors back off
        exponentially with jitter, capped at 30 seconds.
        """
        backoff = 1
        needs_list = True
        while not stop_event.is_set():
            try:
                if needs_list:
                    self._relist()
                    needs_list = False
                for event_type, obj in self._watch(self._resource_version, self._resync_seconds):
                    self.apply(event_type, obj)
                    if stop_event.is_set():
                        break
                backoff = 1
            except KubernetesGoneError:
                self._log.info("watch_expired_relisting")
                needs_list = True
            except KubernetesAuthError as e:
                self._log.error("watch_access_denied", error=str(e))
                stop_event.wait(MAX_BACKOFF_SECONDS)
            except KubernetesError as e:
                self._log.warning("watch_failed", error=str(e), backoff=backoff)
                stop_event.wait(backoff * (0.5 + random.random()))  # noqa: S311
                backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)
            except Exception:
                self._log.exception("watch_crashed", backoff=backoff)
                stop_event.wait(backoff * (0.5 + random.random()))  # noqa: S311
                backoff = min(backoff * 2, MAX_BACKOFF_SECONDS)
        self._log.debug("informer_stopped")


# =============================================================================
# Listers
# =============================================================================


class NamespaceLister:
    """Reads Namespaces from an informer cache."""

    def __init__(self, informer: Informer[NamespaceInfo]) -> None:
        self._informer = informer

    def get(self, name: str) -> NamespaceInfo:
        """Get a namespace by name.

        Raises:
            KubernetesNotFoundError: If the namespace is not cached.
        """
        namespace = self._informer.get(name)
        if namespace is None:
            raise KubernetesNotFoundError(resource_type="Namespace", resource_name=name)
        return namespace

    def list(self) -> list[NamespaceInfo]:
        """Every cached namespace."""
        return self._informer.list()


class CertificateLister:
    """Reads wildcard Certificates from an informer cache."""

    def __init__(self, informer: Informer[Certificate]) -> None:
        self._informer = informer

    def get(self, name: str, namespace: str) -> Certificate:
        """Get a certificate by name.

        Raises:
            KubernetesNotFoundError: If the certificate is not cached.
        """
        cert = self._informer.get(f"{namespace}/{name}")
        if cert is None:
            raise KubernetesNotFoundError(
                resource_type="Certificate", resource_name=name, namespace=namespace
            )
        return cert

    def list(self, namespace: str, label_key: str | None = None) -> list[Certificate]:
        """Cached certificates in ``namespace``, sorted by name.

        Args:
            namespace: Namespace to list.
            label_key: If set, only certificates carrying this label.
        """
        return sorted(
            (
                cert
                for cert in self._informer.list()
                if cert.namespace == namespace and (label_key is None or label_key in cert.labels)
            ),
            key=lambda cert: cert.name,
        )
