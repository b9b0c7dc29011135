"""Deterministic names for namespace certificates."""

from __future__ import annotations


def certificate_name(namespace: str, domain: str) -> str:
    """Name of the wildcard certificate for ``namespace`` under ``domain``."""
    return f"{namespace}.{domain}"


def secret_name(cert_name: str) -> str:
    """Name of the Secret receiving the key pair; same as the certificate."""
    return cert_name
