# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/config/loader.py

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml

from .models import ControllerConfig

log = logging.getLogger("kv2k8s")

# env var -> dotted path into the config dict
ENV_OVERRIDES = {
    "KV2K8S_NAMESPACE": "kube.namespace",
    "KV2K8S_RESYNC_SECONDS": "resync_seconds",
    "KV2K8S_KUBECONFIG": "kube.kubeconfig",
    "KV2K8S_VAULT_SUFFIX": "vault.dns_suffix",
}


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    return yaml.safe_load(expanded) or {}


def _set_path(data: dict, dotted: str, value) -> None:
    *parents, leaf = dotted.split(".")
    node = data
    for p in parents:
        child = node.get(p)
        if not isinstance(child, dict):
            child = {}
            node[p] = child
        node = child
    node[leaf] = value


def _apply_env(data: dict, environ: Mapping[str, str]) -> dict:
    for var, dotted in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value in (None, ""):
            continue
        log.debug("config override %s from %s", dotted, var)
        _set_path(data, dotted, value)
    return data


def load_config(
    path: Optional[str | Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> ControllerConfig:
    """
    Build the controller configuration.

    Values come from the optional YAML file (``${ENV_VAR}`` placeholders are
    expanded with ``os.path.expandvars``), then the ``KV2K8S_*`` environment
    overrides are applied, and finally pydantic validates the result.
    Every setting has a default, so running without a file is fine.
    """
    data: dict = {}
    if path is not None:
        path = Path(path)
        data = _load_yaml(path)
        log.debug("loaded config from %s", path)

    _apply_env(data, os.environ if environ is None else environ)
    return ControllerConfig.model_validate(data)
