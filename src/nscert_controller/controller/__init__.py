"""Controller runtime: caches, work queue, config watchers and workers."""

from nscert_controller.controller.configmap import (
    ConfigWatcher,
    KubernetesConfigMapWatcher,
    ManualConfigWatcher,
)
from nscert_controller.controller.controller import Controller, new_controller
from nscert_controller.controller.informer import (
    CertificateLister,
    EventHandler,
    Informer,
    NamespaceLister,
)
from nscert_controller.controller.workqueue import RateLimitingQueue

__all__ = [
    "CertificateLister",
    "ConfigWatcher",
    "Controller",
    "EventHandler",
    "Informer",
    "KubernetesConfigMapWatcher",
    "ManualConfigWatcher",
    "NamespaceLister",
    "RateLimitingQueue",
    "new_controller",
]
