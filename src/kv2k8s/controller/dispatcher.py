# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/dispatcher.py
"""
Routes KeyVaultSecret lifecycle notifications onto the structural and
vault-drift queues.

classify() decides which queue a change belongs on and is free of side
effects; EventDispatcher only converts payloads and performs the enqueue.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.controller.informer import DeletedFinalStateUnknown
from kv2k8s.controller.queue import RateLimitingQueue

log = logging.getLogger("kv2k8s")


class Route(str, Enum):
    NONE = "none"
    STRUCTURAL = "structural"
    VAULT = "vault"


def classify(old: Optional[KeyVaultSecret], new: Optional[KeyVaultSecret]) -> Route:
    """
    old=None is an add, new=None is a delete, both set is an update.

    An update that carries the same resourceVersion is a resync (nothing in
    the object changed), so only the vault content needs re-checking.
    """
    if old is None and new is None:
        return Route.NONE

    if old is None:
        return Route.STRUCTURAL if new.has_output_defined() else Route.NONE

    if new is None:
        return Route.STRUCTURAL if old.has_output_defined() else Route.NONE

    if old.metadata.resource_version == new.metadata.resource_version:
        return Route.VAULT if new.has_output_defined() else Route.NONE

    if old.has_output_defined() or new.has_output_defined():
        return Route.STRUCTURAL
    return Route.NONE


def _convert(obj: Any) -> KeyVaultSecret:
    if isinstance(obj, DeletedFinalStateUnknown):
        obj = obj.obj
    return KeyVaultSecret.from_object(obj)


class EventDispatcher:
    def __init__(self, structural: RateLimitingQueue, vault: RateLimitingQueue):
        self.structural = structural
        self.vault = vault

    def _enqueue(self, route: Route, kvs: KeyVaultSecret) -> None:
        if route is Route.STRUCTURAL:
            log.debug("[dispatch] %s -> structural queue", kvs.key)
            self.structural.add(kvs.key)
        elif route is Route.VAULT:
            log.debug("[dispatch] %s -> vault queue", kvs.key)
            self.vault.add(kvs.key)

    def on_add(self, obj: Any) -> None:
        try:
            kvs = _convert(obj)
        except (TypeError, ValidationError) as e:
            log.error("[dispatch] dropping add event, not a KeyVaultSecret: %s", e)
            return
        self._enqueue(classify(None, kvs), kvs)

    def on_update(self, old: Any, new: Any) -> None:
        try:
            old_kvs = _convert(old)
            new_kvs = _convert(new)
        except (TypeError, ValidationError) as e:
            log.error("[dispatch] dropping update event, not a KeyVaultSecret: %s", e)
            return
        self._enqueue(classify(old_kvs, new_kvs), new_kvs)

    def on_delete(self, obj: Any) -> None:
        try:
            kvs = _convert(obj)
        except (TypeError, ValidationError) as e:
            log.error("[dispatch] dropping delete event, not a KeyVaultSecret: %s", e)
            return
        route = classify(kvs, None)
        if route is Route.NONE:
            return
        # no vault retry may outlive the resource
        self.vault.forget(kvs.key)
        self._enqueue(route, kvs)
