"""Reconciliation controller: informers, work queue and worker pool."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any

import structlog

from nscert_controller.controller.informer import (
    CertificateLister,
    EventHandler,
    Informer,
    NamespaceLister,
)
from nscert_controller.controller.workqueue import RateLimitingQueue
from nscert_controller.core.config.snapshot import ConfigStore
from nscert_controller.core.exceptions import InternalError
from nscert_controller.integrations.kubernetes.config import ControllerConfig
from nscert_controller.integrations.kubernetes.models.namespace import NamespaceInfo
from nscert_controller.reconciler.nscert import NamespaceCertReconciler
from nscert_controller.services.kubernetes.certificate_manager import CertificateManager
from nscert_controller.services.kubernetes.event_recorder import KubernetesEventRecorder
from nscert_controller.services.kubernetes.namespace_manager import NamespaceManager

if TYPE_CHECKING:
    from nscert_controller.controller.configmap import ConfigWatcher
    from nscert_controller.integrations.kubernetes.client import KubernetesClient
    from nscert_controller.integrations.kubernetes.models.certificate import Certificate

logger = structlog.get_logger()

CONTROLLER_NAME = "nscert"
CACHE_SYNC_TIMEOUT_SECONDS = 120.0


class Controller:
    """Feeds namespace keys from a work queue to a reconciler.

    Args:
        reconciler: Object with ``reconcile(key)``.
        queue: Work queue shared with the event handlers.
        namespace_lister: Used to enqueue every namespace on a global resync.
        informers: Caches started by ``run`` and awaited before workers start.
        config_watcher: Started by ``run`` before the informers.
    """

    def __init__(
        self,
        reconciler: Any,
        queue: RateLimitingQueue,
        namespace_lister: NamespaceLister,
        informers: list[Informer[Any]] | None = None,
        config_watcher: ConfigWatcher | None = None,
    ) -> None:
        self.reconciler = reconciler
        self.queue = queue
        self._namespace_lister = namespace_lister
        self._informers = informers or []
        self._config_watcher = config_watcher
        self._workers: list[threading.Thread] = []
        self._log = logger.bind(entity="controller", controller=CONTROLLER_NAME)

    # =========================================================================
    # Enqueueing
    # =========================================================================

    def enqueue(self, namespace: NamespaceInfo | str) -> None:
        """Queue a namespace (object or name) for reconciliation."""
        key = namespace if isinstance(namespace, str) else namespace.name
        self.queue.add(key)

    def enqueue_controller_of(self, cert: Certificate) -> None:
        """Queue the namespace controlling ``cert``, if a Namespace controls it."""
        ref = cert.controller_ref
        if ref is not None and ref.kind == NamespaceInfo.kind:
            self.queue.add(ref.name)

    def global_resync(self, *_: Any) -> None:
        """Queue every known namespace, e.g. after a configuration change."""
        namespaces = self._namespace_lister.list()
        self._log.info("global_resync", count=len(namespaces))
        for namespace in namespaces:
            self.enqueue(namespace)

    # =========================================================================
    # Processing
    # =========================================================================

    def process_next_item(self) -> bool:
        """Reconcile one key from the queue.

        Returns:
            False once the queue is shut down and drained.
        """
        key, shutdown = self.queue.get()
        if shutdown or key is None:
            return False

        log = self._log.bind(key=key)
        try:
            self.reconciler.reconcile(key)
        except InternalError as e:
            log.warning(
                "reconcile_failed_requeueing",
                error=e.message,
                requeues=self.queue.num_requeues(key),
            )
            self.queue.add_rate_limited(key)
        except Exception:
            log.exception("reconcile_crashed_requeueing")
            self.queue.add_rate_limited(key)
        else:
            self.queue.forget(key)
            log.debug("reconcile_succeeded")
        finally:
            self.queue.done(key)
        return True

    def _run_worker(self) -> None:
        while self.process_next_item():
            pass

    def run(self, workers: int, stop_event: threading.Event) -> None:
        """Run until ``stop_event`` is set.

        Starts the config watcher and informers, waits for the caches to
        sync, then runs ``workers`` threads. On stop the queue is shut down
        and in-flight reconciliations are allowed to finish.
        """
        self._log.info("starting_controller", workers=workers)
        if self._config_watcher is not None:
            self._config_watcher.start(stop_event)
        for informer in self._informers:
            informer.start(stop_event)
        for informer in self._informers:
            if not informer.wait_for_sync(CACHE_SYNC_TIMEOUT_SECONDS):
                self._log.error("cache_sync_timeout", resource=informer.name)
                stop_event.set()
                self.queue.shut_down()
                return

        self._workers = [
            threading.Thread(target=self._run_worker, name=f"{CONTROLLER_NAME}-worker-{i}")
            for i in range(workers)
        ]
        for worker in self._workers:
            worker.start()
        self._log.info("controller_started")

        stop_event.wait()

        self._log.info("stopping_controller")
        self.queue.shut_down()
        for worker in self._workers:
            worker.join()
        self._log.info("controller_stopped")


def new_controller(
    client: KubernetesClient,
    config_watcher: ConfigWatcher,
    config: ControllerConfig | None = None,
) -> Controller:
    """Build a runnable namespace certificate controller.

    Wires informers for Namespaces and Certificates, the configuration store
    fed by ``config_watcher``, the Kubernetes event recorder and the work
    queue, and connects every change source to the queue:

    * Namespace add/update/delete enqueues the namespace.
    * Certificate add/update/delete enqueues the controlling namespace.
    * A new configuration snapshot enqueues every namespace.
    """
    config = config or ControllerConfig()
    namespaces = NamespaceManager(client)
    certificates = CertificateManager(client)
    retry_decorator = client.make_retry_decorator()

    namespace_informer: Informer[NamespaceInfo] = Informer(
        "namespaces",
        namespaces.list_namespaces,
        namespaces.watch_namespaces,
        resync_seconds=config.resync_seconds,
        retry_decorator=retry_decorator,
    )
    certificate_informer: Informer[Certificate] = Informer(
        "certificates",
        certificates.list_certificates,
        certificates.watch_certificates,
        resync_seconds=config.resync_seconds,
        retry_decorator=retry_decorator,
    )
    namespace_lister = NamespaceLister(namespace_informer)

    config_store = ConfigStore()
    reconciler = NamespaceCertReconciler(
        namespace_lister=namespace_lister,
        certificate_lister=CertificateLister(certificate_informer),
        certificate_client=certificates,
        recorder=KubernetesEventRecorder(client),
        config_store=config_store,
    )

    controller = Controller(
        reconciler,
        RateLimitingQueue(CONTROLLER_NAME),
        namespace_lister,
        informers=[namespace_informer, certificate_informer],
        config_watcher=config_watcher,
    )

    namespace_informer.add_event_handler(
        EventHandler(
            on_add=controller.enqueue,
            on_update=lambda _old, new: controller.enqueue(new),
            on_delete=controller.enqueue,
        )
    )
    certificate_informer.add_event_handler(
        EventHandler(
            on_add=controller.enqueue_controller_of,
            on_update=lambda _old, new: controller.enqueue_controller_of(new),
            on_delete=controller.enqueue_controller_of,
        )
    )
    config_store.add_listener(controller.global_resync)
    config_store.watch_configs(config_watcher)

    return controller
