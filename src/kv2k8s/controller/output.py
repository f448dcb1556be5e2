# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/output.py
"""
Structural reconciliation: make sure every output a KeyVaultSecret
declares exists and is controlled by it.

Payload is never touched here; objects are created empty and filled by
the vault reconciler.
"""

from __future__ import annotations

import logging
from typing import Callable

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.controller.errors import OwnershipConflictError
from kv2k8s.k8s.client import ClusterClient
from kv2k8s.k8s.errors import AlreadyExistsError, NotFoundError
from kv2k8s.k8s.objects import is_owned_by, new_config_map, new_secret
from kv2k8s.observers.dispatcher import EventBus
from kv2k8s.observers.events import OutputConflict, OutputCreated, new_ctx
from kv2k8s.utils.helpers import split_key

log = logging.getLogger("kv2k8s")

SECRET = "Secret"
CONFIG_MAP = "ConfigMap"


class OutputReconciler:
    def __init__(self, lister, cluster: ClusterClient, bus: EventBus):
        self.lister = lister
        self.cluster = cluster
        self.bus = bus

    def sync(self, key: str) -> bool:
        """Returns False when the resource is gone or declares no output."""
        namespace, name = split_key(key)
        try:
            kvs = self.lister.get(namespace, name)
        except NotFoundError:
            log.debug("[output] %s no longer exists", key)
            return False

        if kvs.has_output_secret():
            self._ensure(
                kvs,
                SECRET,
                kvs.spec.output.secret.name,
                get=self.cluster.get_secret,
                create=lambda: self.cluster.create_secret(namespace, new_secret(kvs)),
            )

        if kvs.has_output_config_map():
            self._ensure(
                kvs,
                CONFIG_MAP,
                kvs.spec.output.config_map.name,
                get=self.cluster.get_config_map,
                create=lambda: self.cluster.create_config_map(namespace, new_config_map(kvs)),
            )
        return kvs.has_output_defined()

    def _ensure(
        self,
        kvs: KeyVaultSecret,
        kind: str,
        output_name: str,
        *,
        get: Callable[[str, str], object],
        create: Callable[[], object],
    ):
        namespace = kvs.metadata.namespace
        try:
            obj = get(namespace, output_name)
        except NotFoundError:
            try:
                obj = create()
                log.info("[output] %s created %s %s/%s", kvs.key, kind, namespace, output_name)
                self.bus.emit(OutputCreated(**new_ctx(kvs), output_kind=kind, output_name=output_name))
            except AlreadyExistsError:
                # someone created it between our get and create
                obj = get(namespace, output_name)

        if not is_owned_by(obj, kvs):
            self.bus.emit(OutputConflict(**new_ctx(kvs), output_kind=kind, output_name=output_name))
            raise OwnershipConflictError(
                f"{kind} {namespace}/{output_name} already exists and is not managed by "
                f"{kvs.kind} {kvs.key}"
            )
        return obj
