"""Domain template parsing, wildcard rendering and DNS name matching.

Domain templates use the ``{{.Field}}`` placeholder syntax with three fields:
``Name`` (the workload name), ``Namespace`` and ``Domain``. A namespace
certificate covers every workload in the namespace, so it is rendered with
``Name`` set to ``*``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from nscert_controller.core.exceptions import ConfigInvalidError, TemplateInvalidError

DEFAULT_DOMAIN_TEMPLATE = "{{.Name}}.{{.Namespace}}.{{.Domain}}"

PLACEHOLDERS = ("Name", "Namespace", "Domain")
WILDCARD = "*"

_PLACEHOLDER_RE = re.compile(r"\{\{\s*\.(\w+)\s*\}\}")
_DNS_LABEL_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")
_MAX_DNS_NAME_LENGTH = 253
_MAX_DNS_LABEL_LENGTH = 63

# Values used to check that a template yields a valid hostname at all
_SAMPLE_VALUES = {"Name": "name", "Namespace": "namespace", "Domain": "example.com"}


def placeholders(template: str) -> list[str]:
    """Return the placeholder field names used by a template, in order."""
    return _PLACEHOLDER_RE.findall(template)


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace known placeholders; unknown ones are left in place."""

    def _replace(match: re.Match[str]) -> str:
        field = match.group(1)
        return values.get(field, match.group(0))

    return _PLACEHOLDER_RE.sub(_replace, template)


def is_dns1123_subdomain(value: str) -> bool:
    """Check a hostname against the Kubernetes DNS-1123 subdomain rules."""
    if not value or len(value) > _MAX_DNS_NAME_LENGTH:
        return False
    return all(
        len(label) <= _MAX_DNS_LABEL_LENGTH and _DNS_LABEL_RE.match(label)
        for label in value.split(".")
    )


def validate_domain_template(template: str) -> str:
    """Validate a domain template from config-network.

    Args:
        template: Raw template string.

    Returns:
        The template, unchanged.

    Raises:
        ConfigInvalidError: If the template uses unknown fields, omits Name or
            Namespace, or does not produce a valid hostname.
    """
    fields = placeholders(template)
    unknown = sorted(set(fields) - set(PLACEHOLDERS))
    if unknown:
        raise ConfigInvalidError(
            f"domain template {template!r} uses unknown fields: {', '.join(unknown)}"
        )
    for required in ("Name", "Namespace"):
        if required not in fields:
            raise ConfigInvalidError(
                f"domain template {template!r} must contain {{{{.{required}}}}}"
            )

    sample = substitute(template, _SAMPLE_VALUES)
    if "{{" in sample or "}}" in sample:
        raise ConfigInvalidError(f"domain template {template!r} has a malformed placeholder")
    if not is_dns1123_subdomain(sample):
        raise ConfigInvalidError(
            f"domain template {template!r} renders invalid hostname {sample!r}"
        )
    return template


def render(template: str, namespace: str, domain: str) -> str:
    """Render the wildcard DNS name a namespace certificate must cover.

    The wildcard has to end up in the leftmost label. Whatever else the
    template puts in that label (``{{.Name}}-suffix``) is still covered by a
    ``*`` wildcard, so the leftmost label is normalised to ``*``.

    Args:
        template: Domain template.
        namespace: Namespace name.
        domain: Resolved domain suffix.

    Returns:
        A DNS name of the form ``*.<rest>``.

    Raises:
        TemplateInvalidError: If the rendered name is not a usable wildcard.
    """
    rendered = substitute(
        template,
        {"Name": WILDCARD, "Namespace": namespace, "Domain": domain},
    )
    if "{{" in rendered or "}}" in rendered:
        raise TemplateInvalidError(
            f"unresolved placeholder in rendered name {rendered!r}", template=template
        )

    labels = rendered.split(".")
    if len(labels) < 2 or any(not label for label in labels):
        raise TemplateInvalidError(
            f"rendered name {rendered!r} has an empty DNS label", template=template
        )
    if WILDCARD not in labels[0]:
        raise TemplateInvalidError(
            f"rendered name {rendered!r} does not start with a wildcard label",
            template=template,
        )
    if any(WILDCARD in label for label in labels[1:]):
        raise TemplateInvalidError(
            f"rendered name {rendered!r} has a wildcard outside the leftmost label",
            template=template,
        )

    return ".".join([WILDCARD, *labels[1:]])


def is_compatible(existing_dns_names: Iterable[str], rendered: str) -> bool:
    """Return True if an existing certificate already covers ``rendered``."""
    return rendered in set(existing_dns_names)
