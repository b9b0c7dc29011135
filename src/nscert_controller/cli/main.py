"""Main CLI entry point using Typer."""

from __future__ import annotations

import signal
import threading
from types import FrameType
from typing import Any

import structlog
import typer
from pydantic import ValidationError
from rich.console import Console

from nscert_controller import __version__
from nscert_controller.controller.configmap import KubernetesConfigMapWatcher
from nscert_controller.controller.controller import new_controller
from nscert_controller.core.exceptions import ConfigInvalidError
from nscert_controller.integrations.kubernetes.client import KubernetesClient
from nscert_controller.integrations.kubernetes.config import ControllerConfig
from nscert_controller.integrations.kubernetes.exceptions import KubernetesError
from nscert_controller.logging.config import configure_logging

app = typer.Typer(
    name="nscert-controller",
    help="Provision wildcard TLS certificates for Kubernetes namespaces.",
    add_completion=False,
)

console = Console()
logger = structlog.get_logger()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nscert-controller version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Write console logs as JSON lines.",
    ),
) -> None:
    """nscert-controller - wildcard certificates for every namespace."""
    configure_logging(verbose=verbose, debug=debug, json_output=json_logs)


def _install_signal_handlers(stop_event: threading.Event) -> None:
    def _handle(signum: int, _frame: FrameType | None) -> None:
        logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, _handle)
    signal.signal(signal.SIGINT, _handle)


@app.command()
def run(
    kubeconfig: str | None = typer.Option(
        None,
        "--kubeconfig",
        help="Path to a kubeconfig file. Defaults to in-cluster configuration.",
    ),
    context: str | None = typer.Option(
        None,
        "--context",
        help="Kubeconfig context to use.",
    ),
    system_namespace: str | None = typer.Option(
        None,
        "--system-namespace",
        help="Namespace holding config-network and config-domain.",
    ),
    workers: int | None = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of reconcile worker threads.",
    ),
) -> None:
    """Run the controller until SIGTERM or SIGINT."""
    overrides: dict[str, Any] = {
        key: value
        for key, value in {
            "kubeconfig": kubeconfig,
            "context": context,
            "system_namespace": system_namespace,
            "workers": workers,
        }.items()
        if value is not None
    }
    try:
        config = ControllerConfig.from_env(overrides)
    except (ValidationError, ValueError) as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(2) from e

    try:
        client = KubernetesClient(config)
    except KubernetesError as e:
        console.print(f"[red]Cannot connect to Kubernetes:[/red] {e}")
        raise typer.Exit(1) from e

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    with client:
        if not client.check_connection():
            console.print(
                f"[red]Cannot reach the Kubernetes API server[/red] "
                f"(context: {client.get_current_context()})"
            )
            raise typer.Exit(1)

        watcher = KubernetesConfigMapWatcher(
            client, config.system_namespace, timeout_seconds=config.resync_seconds
        )
        controller = new_controller(client, watcher, config)
        logger.info(
            "controller_configured",
            context=client.get_current_context(),
            system_namespace=config.system_namespace,
            workers=config.workers,
        )
        try:
            controller.run(config.workers, stop_event)
        except KubernetesError as e:
            console.print(f"[red]Controller failed:[/red] {e}")
            raise typer.Exit(1) from e
        except ConfigInvalidError as e:
            console.print(f"[red]Invalid cluster configuration:[/red] {e.message}")
            raise typer.Exit(2) from e


if __name__ == "__main__":
    app()
