"""Process-level controller configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator


class ControllerConfig(BaseModel):
    """Settings the controller process needs before it can talk to the cluster.

    Runtime behaviour (domain template, auto-TLS, domains) is not configured
    here; it is read from ConfigMaps in ``system_namespace`` while running.
    """

    model_config = ConfigDict(extra="forbid")

    kubeconfig: str | None = None
    context: str | None = None
    system_namespace: str = "knative-serving"
    workers: int = 2
    retry_attempts: int = 3
    resync_seconds: int = 600

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())

    @field_validator("workers")
    @classmethod
    def validate_workers(cls, v: int) -> int:
        """Validate the worker pool has at least one thread."""
        if v < 1:
            raise ValueError("workers must be at least 1")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        """Validate retry_attempts is positive."""
        if v < 1:
            raise ValueError("retry_attempts must be at least 1")
        return v

    @field_validator("resync_seconds")
    @classmethod
    def validate_resync_seconds(cls, v: int) -> int:
        """Validate resync period is positive."""
        if v <= 0:
            raise ValueError("resync_seconds must be positive")
        return v

    @classmethod
    def from_env(cls, overrides: dict[str, Any] | None = None) -> ControllerConfig:
        """Create configuration from environment variables.

        Explicit ``overrides`` (command-line options) take precedence over
        environment variables, which take precedence over field defaults.

        Supported environment variables:
            NSCERT_KUBECONFIG: Path to a kubeconfig file
            NSCERT_CONTEXT: Kubeconfig context to use
            NSCERT_SYSTEM_NAMESPACE: Namespace holding config-network/config-domain
            NSCERT_WORKERS: Number of reconcile worker threads
            NSCERT_RETRY_ATTEMPTS: Connection retry attempts for list calls
            NSCERT_RESYNC_SECONDS: Watch timeout before a periodic re-list
        """
        config_dict: dict[str, Any] = {}

        if kubeconfig := os.environ.get("NSCERT_KUBECONFIG"):
            config_dict["kubeconfig"] = kubeconfig
        if context := os.environ.get("NSCERT_CONTEXT"):
            config_dict["context"] = context
        if system_namespace := os.environ.get("NSCERT_SYSTEM_NAMESPACE"):
            config_dict["system_namespace"] = system_namespace
        if workers := os.environ.get("NSCERT_WORKERS"):
            config_dict["workers"] = int(workers)
        if retry_attempts := os.environ.get("NSCERT_RETRY_ATTEMPTS"):
            config_dict["retry_attempts"] = int(retry_attempts)
        if resync := os.environ.get("NSCERT_RESYNC_SECONDS"):
            config_dict["resync_seconds"] = int(resync)
        if overrides:
            config_dict.update(overrides)

        return cls.model_validate(config_dict)
