# src/kv2k8s/cli/app.py
from __future__ import annotations

import signal
import threading
from pathlib import Path
from typing import Optional

import typer
import yaml
from kubernetes import client

from kv2k8s.config.loader import load_config
from kv2k8s.config.models import ControllerConfig
from kv2k8s.controller.controller import Controller
from kv2k8s.controller.dispatcher import EventDispatcher
from kv2k8s.controller.informer import Informer
from kv2k8s.controller.output import OutputReconciler
from kv2k8s.controller.queue import ExponentialBackoff, RateLimitingQueue
from kv2k8s.controller.status import StatusPersister
from kv2k8s.controller.vault import VaultReconciler
from kv2k8s.k8s.client import ClusterClient, load_kube_config
from kv2k8s.logging.log import init_logging
from kv2k8s.observers.dispatcher import EventBus
from kv2k8s.observers.logger import LoggerObserver
from kv2k8s.observers.recorder import KubeEventObserver
from kv2k8s.utils.hashing import config_map_digest, secret_digest
from kv2k8s.vault.client import AzureKeyVaultService


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Azure Key Vault to Kubernetes controller")


def _queue(name: str, cfg: ControllerConfig) -> RateLimitingQueue:
    return RateLimitingQueue(
        name,
        backoff=ExponentialBackoff(
            base_delay=cfg.queue.base_delay,
            max_delay=cfg.queue.max_delay,
        ),
    )


def build_controller(cfg: ControllerConfig, logger) -> tuple[Informer, Controller]:
    """Wire informer, queues, reconcilers and observers together."""
    core = client.CoreV1Api()
    custom = client.CustomObjectsApi()
    cluster = ClusterClient(core=core, custom=custom)

    bus = EventBus(
        observers=[
            LoggerObserver(logger),
            KubeEventObserver(core, component=cfg.event_component),
        ]
    )

    informer = Informer(
        custom,
        namespace=cfg.kube.namespace,
        resync_period=cfg.resync_seconds,
        watch_timeout=cfg.watch_timeout_seconds,
    )
    lister = informer.lister()

    structural_queue = _queue("structural", cfg)
    vault_queue = _queue("vault", cfg)
    informer.add_event_handler(EventDispatcher(structural_queue, vault_queue))

    outputs = OutputReconciler(lister, cluster, bus)
    vaults = VaultReconciler(
        lister,
        cluster,
        AzureKeyVaultService(dns_suffix=cfg.vault.dns_suffix),
        bus,
        StatusPersister(cluster, attempts=cfg.status_write_attempts),
    )

    controller = Controller(
        structural_queue=structural_queue,
        vault_queue=vault_queue,
        sync_output=outputs.sync,
        sync_vault=vaults.sync,
        structural_workers=cfg.workers.structural,
        vault_workers=cfg.workers.vault,
        max_retries=cfg.queue.max_retries,
        exists=lambda key: informer.store.get(key) is not None,
    )
    return informer, controller


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Controller YAML config"),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Watch one namespace only"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig"),
    context: Optional[str] = typer.Option(None, "--context"),
    in_cluster: bool = typer.Option(False, "--in-cluster", help="Use the pod service account"),
    log_dir: Optional[Path] = typer.Option(None, "--log-dir"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Run the controller until SIGINT/SIGTERM."""
    cfg = load_config(config)
    if namespace:
        cfg.kube.namespace = namespace
    if kubeconfig:
        cfg.kube.kubeconfig = kubeconfig
    if context:
        cfg.kube.context = context
    if in_cluster:
        cfg.kube.in_cluster = True
    if log_dir:
        cfg.logging.log_dir = log_dir

    logger, run_id, log_path = init_logging(
        base_dir=cfg.logging.log_dir,
        verbose=debug,
        level=cfg.logging.level,
    )
    logger.debug("config: %s", cfg.model_dump())

    load_kube_config(
        in_cluster=cfg.kube.in_cluster,
        kubeconfig=cfg.kube.kubeconfig,
        context=cfg.kube.context,
    )
    informer, controller = build_controller(cfg, logger)

    stop = threading.Event()

    def _on_signal(signum, _frame):
        logger.info("received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    watcher = threading.Thread(target=informer.run, name="informer", daemon=True)
    watcher.start()

    logger.info("waiting for informer cache to sync")
    while not informer.has_synced.wait(1):
        if stop.is_set():
            informer.stop()
            raise typer.Exit(1)
    logger.info(
        "watching %s (resync every %ss)",
        cfg.kube.namespace or "all namespaces", cfg.resync_seconds,
    )

    try:
        controller.run(stop)
    finally:
        informer.stop()
        watcher.join(5)
    logger.info("=== kv2k8s controller stopped ===")


@app.command("hash")
def hash_cmd(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="YAML or JSON mapping of key -> value"),
    kind: str = typer.Option("secret", "--kind", help="secret or configmap"),
):
    """
    Print the content digest the controller would record in status for the
    given data, to compare against status.secretHash / status.configMapHash.
    """
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise typer.BadParameter(f"{path} must contain a mapping", param_hint="path")
    values = {str(k): "" if v is None else str(v) for k, v in data.items()}

    if kind == "secret":
        typer.echo(secret_digest({k: v.encode("utf-8") for k, v in values.items()}))
    elif kind == "configmap":
        typer.echo(config_map_digest(values))
    else:
        raise typer.BadParameter("expected 'secret' or 'configmap'", param_hint="--kind")


if __name__ == "__main__":
    app()
