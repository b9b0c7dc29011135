"""config-domain parsing and namespace domain resolution.

Each key of config-domain is a domain suffix. Its value is YAML: empty for
the fallback domain, or a ``selector`` map of labels a namespace must carry
to use that domain::

    example.com: ""
    internal.example.com: |
      selector:
        visibility: internal
"""

from __future__ import annotations

from collections.abc import Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field

from nscert_controller.core.exceptions import ConfigInvalidError
from nscert_controller.core.template import is_dns1123_subdomain

DOMAIN_CONFIG_NAME = "config-domain"

DEFAULT_DOMAIN = "example.com"


class DomainEntry(BaseModel):
    """One domain suffix and the labels that select it."""

    model_config = ConfigDict(frozen=True)

    domain: str
    selector: dict[str, str] = Field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        """An empty selector matches every namespace."""
        return not self.selector

    def matches(self, labels: Mapping[str, str]) -> bool:
        """Return True if every selector label is present with equal value."""
        return all(labels.get(key) == value for key, value in self.selector.items())


def order_domains(entries: list[DomainEntry]) -> tuple[DomainEntry, ...]:
    """Sort entries into resolution order.

    Selector domains come first, most specific (most labels) first, with ties
    broken by domain name. The fallback domain is last.
    """
    selective = sorted(
        (e for e in entries if not e.is_fallback),
        key=lambda e: (-len(e.selector), e.domain),
    )
    fallback = sorted((e for e in entries if e.is_fallback), key=lambda e: e.domain)
    return (*selective, *fallback)


def resolve(labels: Mapping[str, str], domains: tuple[DomainEntry, ...]) -> str | None:
    """Pick the domain for a namespace.

    Args:
        labels: Namespace labels.
        domains: Entries in resolution order (see ``order_domains``).

    Returns:
        The first matching domain, or None if nothing matches, which only
        happens when no fallback domain is configured.
    """
    for entry in domains:
        if entry.matches(labels):
            return entry.domain
    return None


def _parse_selector(domain: str, raw: str | None) -> dict[str, str]:
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigInvalidError(
            f"cannot parse selector for domain {domain!r}: {e}",
            config_name=DOMAIN_CONFIG_NAME,
        ) from e

    if parsed is None:
        return {}
    if not isinstance(parsed, dict) or set(parsed) - {"selector"}:
        raise ConfigInvalidError(
            f"value for domain {domain!r} must be empty or a 'selector' map",
            config_name=DOMAIN_CONFIG_NAME,
        )

    selector = parsed.get("selector") or {}
    if not isinstance(selector, dict):
        raise ConfigInvalidError(
            f"selector for domain {domain!r} must be a map of labels",
            config_name=DOMAIN_CONFIG_NAME,
        )
    result: dict[str, str] = {}
    for key, value in selector.items():
        if not isinstance(key, str) or not isinstance(value, str | int | bool):
            raise ConfigInvalidError(
                f"selector for domain {domain!r} has non-string label {key!r}",
                config_name=DOMAIN_CONFIG_NAME,
            )
        result[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return result


class DomainConfig(BaseModel):
    """Domains read from config-domain, in resolution order."""

    model_config = ConfigDict(frozen=True)

    domains: tuple[DomainEntry, ...] = Field(
        default_factory=lambda: (DomainEntry(domain=DEFAULT_DOMAIN),)
    )

    @classmethod
    def from_config_map(cls, data: Mapping[str, str] | None) -> DomainConfig:
        """Build from ConfigMap data.

        Keys starting with ``_`` are ignored. When no fallback domain is
        configured, ``example.com`` becomes the fallback.

        Raises:
            ConfigInvalidError: On an unparsable selector, an invalid domain
                name, or more than one fallback domain.
        """
        entries: list[DomainEntry] = []
        for domain, raw in (data or {}).items():
            if domain.startswith("_"):
                continue
            if not is_dns1123_subdomain(domain):
                raise ConfigInvalidError(
                    f"{domain!r} is not a valid domain name",
                    config_name=DOMAIN_CONFIG_NAME,
                )
            entries.append(DomainEntry(domain=domain, selector=_parse_selector(domain, raw)))

        fallbacks = [e.domain for e in entries if e.is_fallback]
        if len(fallbacks) > 1:
            raise ConfigInvalidError(
                f"only one domain may have an empty selector, got: {', '.join(sorted(fallbacks))}",
                config_name=DOMAIN_CONFIG_NAME,
            )
        if not fallbacks and DEFAULT_DOMAIN not in {e.domain for e in entries}:
            entries.append(DomainEntry(domain=DEFAULT_DOMAIN))

        return cls(domains=order_domains(entries))
