"""config-network parsing."""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from nscert_controller.core.exceptions import ConfigInvalidError
from nscert_controller.core.template import DEFAULT_DOMAIN_TEMPLATE, validate_domain_template

NETWORK_CONFIG_NAME = "config-network"

DEFAULT_CERTIFICATE_CLASS = "cert-manager.certificate.networking.knative.dev"

# Each setting accepts the legacy camelCase key and the kebab-case key
DOMAIN_TEMPLATE_KEYS = ("domain-template", "domainTemplate")
AUTO_TLS_KEYS = ("auto-tls", "autoTLS")
CERTIFICATE_CLASS_KEYS = ("certificate-class", "certificate.class")

_TRUTHY = frozenset({"enabled", "true"})
_FALSY = frozenset({"disabled", "false", ""})


def _first(data: Mapping[str, str], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_auto_tls(value: str) -> bool:
    """Parse an auto-TLS flag value.

    Raises:
        ConfigInvalidError: If the value is neither truthy nor falsy.
    """
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise ConfigInvalidError(
        f"autoTLS must be one of Enabled, Disabled, true, false; got {value!r}",
        config_name=NETWORK_CONFIG_NAME,
    )


class NetworkConfig(BaseModel):
    """Settings read from config-network."""

    model_config = ConfigDict(frozen=True)

    domain_template: str = Field(default=DEFAULT_DOMAIN_TEMPLATE)
    auto_tls: bool = Field(default=False)
    certificate_class: str = Field(default=DEFAULT_CERTIFICATE_CLASS)

    @classmethod
    def from_config_map(cls, data: Mapping[str, str] | None) -> NetworkConfig:
        """Build from ConfigMap data, applying defaults for missing keys.

        Raises:
            ConfigInvalidError: On a malformed template or auto-TLS value.
        """
        data = data or {}

        template = _first(data, DOMAIN_TEMPLATE_KEYS)
        if template is None or not template.strip():
            template = DEFAULT_DOMAIN_TEMPLATE
        try:
            validate_domain_template(template.strip())
        except ConfigInvalidError as e:
            raise ConfigInvalidError(e.message, config_name=NETWORK_CONFIG_NAME) from e

        auto_tls_value = _first(data, AUTO_TLS_KEYS)
        auto_tls = parse_auto_tls(auto_tls_value) if auto_tls_value is not None else False

        certificate_class = _first(data, CERTIFICATE_CLASS_KEYS)
        if not certificate_class or not certificate_class.strip():
            certificate_class = DEFAULT_CERTIFICATE_CLASS

        return cls(
            domain_template=template.strip(),
            auto_tls=auto_tls,
            certificate_class=certificate_class.strip(),
        )
