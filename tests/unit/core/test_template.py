"""Unit tests for domain template rendering and matching."""

from __future__ import annotations

import pytest

from nscert_controller.core.exceptions import ConfigInvalidError, TemplateInvalidError
from nscert_controller.core.template import (
    DEFAULT_DOMAIN_TEMPLATE,
    is_compatible,
    is_dns1123_subdomain,
    placeholders,
    render,
    substitute,
    validate_domain_template,
)


@pytest.mark.unit
class TestPlaceholders:
    """Tests for placeholder parsing and substitution."""

    def test_placeholders_in_order(self) -> None:
        """Fields are returned in template order."""
        assert placeholders(DEFAULT_DOMAIN_TEMPLATE) == ["Name", "Namespace", "Domain"]

    def test_placeholders_allow_spaces(self) -> None:
        """Whitespace inside braces is tolerated."""
        assert placeholders("{{ .Name }}.{{.Domain}}") == ["Name", "Domain"]

    def test_substitute_leaves_unknown(self) -> None:
        """Fields without a value stay in place."""
        assert substitute("{{.Name}}.{{.Other}}", {"Name": "a"}) == "a.{{.Other}}"


@pytest.mark.unit
class TestIsDns1123Subdomain:
    """Tests for hostname validation."""

    @pytest.mark.parametrize("value", ["example.com", "a", "a-b.c1.d", "x" * 63 + ".com"])
    def test_valid(self, value: str) -> None:
        """Lowercase alphanumeric labels with inner dashes are valid."""
        assert is_dns1123_subdomain(value)

    @pytest.mark.parametrize(
        "value",
        ["", "Example.com", "-a.com", "a-.com", "a..com", "x" * 64 + ".com", "a_b.com"],
    )
    def test_invalid(self, value: str) -> None:
        """Anything else is rejected."""
        assert not is_dns1123_subdomain(value)


@pytest.mark.unit
class TestValidateDomainTemplate:
    """Tests for validate_domain_template."""

    @pytest.mark.parametrize(
        "template",
        [
            DEFAULT_DOMAIN_TEMPLATE,
            "{{.Name}}-suffix.{{.Namespace}}.{{.Domain}}",
            "{{.Name}}.subdomain.{{.Namespace}}.{{.Domain}}",
            "{{.Namespace}}.{{.Name}}.{{.Domain}}",
            "{{.Name}}-{{.Namespace}}.{{.Domain}}",
        ],
    )
    def test_valid_templates(self, template: str) -> None:
        """Templates producing a hostname are accepted unchanged."""
        assert validate_domain_template(template) == template

    def test_unknown_field(self) -> None:
        """Unknown placeholders are rejected."""
        with pytest.raises(ConfigInvalidError, match="unknown fields: Tag"):
            validate_domain_template("{{.Name}}.{{.Namespace}}.{{.Tag}}")

    @pytest.mark.parametrize(
        "template",
        ["{{.Namespace}}.{{.Domain}}", "{{.Name}}.{{.Domain}}"],
    )
    def test_missing_required_field(self, template: str) -> None:
        """Name and Namespace are mandatory."""
        with pytest.raises(ConfigInvalidError, match="must contain"):
            validate_domain_template(template)

    def test_malformed_placeholder(self) -> None:
        """Leftover braces are rejected."""
        with pytest.raises(ConfigInvalidError, match="malformed"):
            validate_domain_template("{{.Name}}.{{.Namespace}}.{{Domain}}")

    def test_invalid_hostname(self) -> None:
        """Templates rendering an invalid hostname are rejected."""
        with pytest.raises(ConfigInvalidError, match="invalid hostname"):
            validate_domain_template("{{.Name}}_{{.Namespace}}.{{.Domain}}")


@pytest.mark.unit
class TestRender:
    """Tests for wildcard rendering."""

    def test_default_template(self) -> None:
        """The default template yields *.<ns>.<domain>."""
        assert render(DEFAULT_DOMAIN_TEMPLATE, "foo", "example.com") == "*.foo.example.com"

    def test_suffix_in_leftmost_label_is_normalised(self) -> None:
        """Extra text next to the wildcard still renders a plain wildcard."""
        rendered = render("{{.Name}}-suffix.{{.Namespace}}.{{.Domain}}", "testns", "example.com")
        assert rendered == "*.testns.example.com"

    def test_extra_subdomain(self) -> None:
        """Additional labels are kept."""
        rendered = render(
            "{{.Name}}.subdomain.{{.Namespace}}.{{.Domain}}", "testns", "example.com"
        )
        assert rendered == "*.subdomain.testns.example.com"

    def test_wildcard_not_leftmost(self) -> None:
        """A wildcard below the leftmost label cannot be issued."""
        with pytest.raises(TemplateInvalidError, match="does not start with a wildcard"):
            render("{{.Namespace}}.{{.Name}}.{{.Domain}}", "testns", "example.com")

    def test_wildcard_in_two_labels(self) -> None:
        """Only one wildcard label is allowed."""
        with pytest.raises(TemplateInvalidError, match="outside the leftmost"):
            render("{{.Name}}.{{.Name}}.{{.Namespace}}.{{.Domain}}", "ns", "example.com")

    def test_unresolved_placeholder(self) -> None:
        """Unknown fields cannot be rendered."""
        with pytest.raises(TemplateInvalidError, match="unresolved placeholder"):
            render("{{.Name}}.{{.Other}}.{{.Domain}}", "ns", "example.com")

    def test_empty_label(self) -> None:
        """An empty domain leaves an empty label."""
        with pytest.raises(TemplateInvalidError, match="empty DNS label"):
            render(DEFAULT_DOMAIN_TEMPLATE, "ns", "")

    def test_error_carries_template(self) -> None:
        """The offending template is attached to the error."""
        template = "{{.Namespace}}.{{.Name}}.{{.Domain}}"
        with pytest.raises(TemplateInvalidError) as exc_info:
            render(template, "ns", "example.com")
        assert exc_info.value.template == template


@pytest.mark.unit
class TestIsCompatible:
    """Tests for is_compatible."""

    def test_exact_match(self) -> None:
        """A certificate listing the name covers it."""
        assert is_compatible(["*.foo.example.com"], "*.foo.example.com")

    def test_match_among_several(self) -> None:
        """Any listed name may match."""
        assert is_compatible(["a.example.com", "*.foo.example.com"], "*.foo.example.com")

    def test_mismatch(self) -> None:
        """A different wildcard does not cover the name."""
        assert not is_compatible(["*.foo.example.com"], "*.subdomain.foo.example.com")

    def test_empty(self) -> None:
        """A certificate without names covers nothing."""
        assert not is_compatible([], "*.foo.example.com")
