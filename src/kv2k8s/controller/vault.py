# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/vault.py
"""
Vault-drift reconciliation.

For each declared output: fetch the vault object through its handler,
digest the produced data, and write the output only when the digest (or
the output name) differs from what status last recorded.
"""

from __future__ import annotations

import logging
from typing import Callable

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.controller.errors import ConfigurationError, OutputNotReadyError, OwnershipConflictError
from kv2k8s.controller.output import CONFIG_MAP, SECRET
from kv2k8s.controller.status import StatusPersister
from kv2k8s.handlers.base import ObjectHandler, VaultService
from kv2k8s.handlers.registry import build_handler
from kv2k8s.k8s.client import ClusterClient
from kv2k8s.k8s.errors import NotFoundError
from kv2k8s.k8s.objects import is_owned_by, with_config_map_data, with_secret_data
from kv2k8s.observers.dispatcher import EventBus
from kv2k8s.observers.events import (
    ConfigurationInvalid,
    OutputConflict,
    OutputUpdated,
    VaultFetchFailed,
    new_ctx,
)
from kv2k8s.utils.hashing import config_map_digest, secret_digest
from kv2k8s.utils.helpers import split_key
from kv2k8s.vault.errors import VaultError

log = logging.getLogger("kv2k8s")

HandlerFactory = Callable[[KeyVaultSecret, VaultService], ObjectHandler]


class VaultReconciler:
    def __init__(
        self,
        lister,
        cluster: ClusterClient,
        vault: VaultService,
        bus: EventBus,
        status: StatusPersister,
        *,
        handler_factory: HandlerFactory = build_handler,
    ):
        self.lister = lister
        self.cluster = cluster
        self.vault = vault
        self.bus = bus
        self.status = status
        self.handler_factory = handler_factory

    def sync(self, key: str) -> bool:
        namespace, name = split_key(key)
        try:
            kvs = self.lister.get(namespace, name)
        except NotFoundError:
            log.debug("[vault] %s no longer exists", key)
            return False

        if not kvs.has_output_defined():
            return True

        try:
            handler = self.handler_factory(kvs, self.vault)
        except ConfigurationError as e:
            self.bus.emit(ConfigurationInvalid(**new_ctx(kvs), error=str(e)))
            raise

        if kvs.has_output_secret():
            self._sync_secret(kvs, handler)
        if kvs.has_output_config_map():
            self._sync_config_map(kvs, handler)
        return True

    # ------------------------------------------------------------------

    def _produce(self, kvs: KeyVaultSecret, produce: Callable[[], dict]) -> dict:
        try:
            return produce()
        except VaultError as e:
            vault = kvs.spec.vault
            self.bus.emit(
                VaultFetchFailed(
                    **new_ctx(kvs),
                    vault_name=vault.name,
                    object_name=vault.object.name,
                    error=str(e),
                )
            )
            raise
        except ConfigurationError as e:
            self.bus.emit(ConfigurationInvalid(**new_ctx(kvs), error=str(e)))
            raise

    def _check_owner(self, kvs: KeyVaultSecret, obj, kind: str, output_name: str) -> None:
        if not is_owned_by(obj, kvs):
            self.bus.emit(OutputConflict(**new_ctx(kvs), output_kind=kind, output_name=output_name))
            raise OwnershipConflictError(
                f"{kind} {kvs.metadata.namespace}/{output_name} is not managed by "
                f"{kvs.kind} {kvs.key}, refusing to write vault content into it"
            )

    def _check_secret_type(self, kvs: KeyVaultSecret, existing, output_name: str) -> None:
        # the API server rejects type changes on an existing Secret
        want = kvs.spec.output.secret.type
        have = existing.type or "Opaque"
        if have != want:
            err = ConfigurationError(
                f"{kvs.key}: Secret {kvs.metadata.namespace}/{output_name} has type '{have}' "
                f"but '{want}' is requested; delete the Secret to change its type"
            )
            self.bus.emit(ConfigurationInvalid(**new_ctx(kvs), error=str(err)))
            raise err

    def _updated(self, kvs: KeyVaultSecret, kind: str, output_name: str) -> None:
        log.info(
            "[vault] %s updated %s %s/%s from Key Vault '%s'",
            kvs.key, kind, kvs.metadata.namespace, output_name, kvs.spec.vault.name,
        )
        log.warning(
            "[vault] %s %s/%s changed; pods consuming it through env vars must be restarted",
            kind, kvs.metadata.namespace, output_name,
        )
        self.bus.emit(OutputUpdated(**new_ctx(kvs), output_kind=kind, output_name=output_name))

    # ------------------------------------------------------------------

    def _sync_secret(self, kvs: KeyVaultSecret, handler: ObjectHandler) -> None:
        namespace = kvs.metadata.namespace
        output_name = kvs.spec.output.secret.name

        values = self._produce(kvs, handler.produce_secret_data)
        digest = secret_digest(values)
        if digest == kvs.status.secret_hash and output_name == kvs.status.secret_name:
            log.debug("[vault] %s secret %s unchanged", kvs.key, output_name)
            return

        try:
            existing = self.cluster.get_secret(namespace, output_name)
        except NotFoundError:
            raise OutputNotReadyError(f"Secret {namespace}/{output_name} has not been created yet") from None
        self._check_owner(kvs, existing, SECRET, output_name)
        self._check_secret_type(kvs, existing, output_name)

        self.cluster.update_secret(
            namespace, with_secret_data(existing, values, replace=handler.replaces_data)
        )
        self._updated(kvs, SECRET, output_name)
        self.status.record_secret(namespace, kvs.metadata.name, output_name, digest)

    def _sync_config_map(self, kvs: KeyVaultSecret, handler: ObjectHandler) -> None:
        namespace = kvs.metadata.namespace
        output_name = kvs.spec.output.config_map.name

        values = self._produce(kvs, handler.produce_config_map_data)
        digest = config_map_digest(values)
        if digest == kvs.status.config_map_hash and output_name == kvs.status.config_map_name:
            log.debug("[vault] %s configmap %s unchanged", kvs.key, output_name)
            return

        try:
            existing = self.cluster.get_config_map(namespace, output_name)
        except NotFoundError:
            raise OutputNotReadyError(
                f"ConfigMap {namespace}/{output_name} has not been created yet"
            ) from None
        self._check_owner(kvs, existing, CONFIG_MAP, output_name)

        self.cluster.update_config_map(
            namespace, with_config_map_data(existing, values, replace=handler.replaces_data)
        )
        self._updated(kvs, CONFIG_MAP, output_name)
        self.status.record_config_map(namespace, kvs.metadata.name, output_name, digest)
