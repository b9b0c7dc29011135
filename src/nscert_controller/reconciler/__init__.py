"""Namespace certificate reconciliation."""

from nscert_controller.reconciler.names import certificate_name, secret_name
from nscert_controller.reconciler.nscert import (
    DesiredState,
    NamespaceCertReconciler,
    desired_state,
    split_key,
)
from nscert_controller.reconciler.resources import make_wildcard_certificate

__all__ = [
    "DesiredState",
    "NamespaceCertReconciler",
    "certificate_name",
    "desired_state",
    "make_wildcard_certificate",
    "secret_name",
    "split_key",
]
