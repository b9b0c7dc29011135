"""Runtime configuration read from config-network and config-domain."""

from nscert_controller.core.config.domain import (
    DEFAULT_DOMAIN,
    DOMAIN_CONFIG_NAME,
    DomainConfig,
    DomainEntry,
    order_domains,
    resolve,
)
from nscert_controller.core.config.network import (
    DEFAULT_CERTIFICATE_CLASS,
    NETWORK_CONFIG_NAME,
    NetworkConfig,
)
from nscert_controller.core.config.snapshot import ConfigSnapshot, ConfigStore

__all__ = [
    "DEFAULT_CERTIFICATE_CLASS",
    "DEFAULT_DOMAIN",
    "DOMAIN_CONFIG_NAME",
    "NETWORK_CONFIG_NAME",
    "ConfigSnapshot",
    "ConfigStore",
    "DomainConfig",
    "DomainEntry",
    "NetworkConfig",
    "order_domains",
    "resolve",
]
