# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/informer.py
"""
List/watch cache for KeyVaultSecret objects.

The informer keeps raw object dicts in a thread-safe store and fans
add/update/delete notifications out to registered handlers. Every
resync_period it re-delivers on_update(obj, obj) for each cached object;
that same-resourceVersion update is what drives periodic vault polling.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import urllib3
from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from kv2k8s.api.models import GROUP, KIND, PLURAL, VERSION, KeyVaultSecret
from kv2k8s.k8s.errors import NotFoundError
from kv2k8s.utils.helpers import meta_namespace_key

log = logging.getLogger("kv2k8s")


@dataclass(frozen=True)
class DeletedFinalStateUnknown:
    """
    Delivered to on_delete when an object vanished while the watch was
    down; obj is the last state the store saw.
    """
    key: str
    obj: Any


class EventHandler(Protocol):
    def on_add(self, obj: Any) -> None: ...
    def on_update(self, old: Any, new: Any) -> None: ...
    def on_delete(self, obj: Any) -> None: ...


class Store:
    def __init__(self):
        self._items: dict[str, dict] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            return self._items.get(key)

    def put(self, obj: dict) -> Optional[dict]:
        key = meta_namespace_key(obj)
        with self._lock:
            old = self._items.get(key)
            self._items[key] = obj
            return old

    def pop(self, key: str) -> Optional[dict]:
        with self._lock:
            return self._items.pop(key, None)

    def replace(self, objs: list[dict]) -> tuple[list[dict], list[tuple[dict, dict]], list[tuple[str, dict]]]:
        """Swap in a fresh listing; returns (added, updated, removed)."""
        fresh = {meta_namespace_key(o): o for o in objs}
        with self._lock:
            old_items = self._items
            self._items = fresh
        added = [o for k, o in fresh.items() if k not in old_items]
        updated = [(old_items[k], o) for k, o in fresh.items() if k in old_items]
        removed = [(k, o) for k, o in old_items.items() if k not in fresh]
        return added, updated, removed

    def list(self) -> list[dict]:
        with self._lock:
            return list(self._items.values())


class KeyVaultSecretLister:
    """Read access to the informer cache, returning freshly parsed models."""

    def __init__(self, store: Store):
        self._store = store

    def get(self, namespace: str, name: str) -> KeyVaultSecret:
        obj = self._store.get(f"{namespace}/{name}")
        if obj is None:
            raise NotFoundError(f"{KIND} {namespace}/{name} not found", status=404)
        return KeyVaultSecret.from_object(obj)


class Informer:
    def __init__(
        self,
        custom: client.CustomObjectsApi,
        *,
        namespace: Optional[str] = None,
        resync_period: float = 60.0,
        watch_timeout: int = 300,
    ):
        self.custom = custom
        self.namespace = namespace
        self.resync_period = resync_period
        self.watch_timeout = watch_timeout

        self.store = Store()
        self.has_synced = threading.Event()
        self._handlers: list[EventHandler] = []
        self._stop = threading.Event()
        self._watch: Optional[watch.Watch] = None
        self._watch_lock = threading.Lock()

    def add_event_handler(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def lister(self) -> KeyVaultSecretLister:
        return KeyVaultSecretLister(self.store)

    # ------------------------------------------------------------------
    # Notification fan-out
    # ------------------------------------------------------------------

    def _notify(self, method: str, *args) -> None:
        for h in self._handlers:
            try:
                getattr(h, method)(*args)
            except Exception:
                log.exception("[informer] handler %s.%s failed", type(h).__name__, method)

    # ------------------------------------------------------------------
    # List / watch
    # ------------------------------------------------------------------

    def _list_func(self, **kwargs):
        if self.namespace:
            return self.custom.list_namespaced_custom_object(
                GROUP, VERSION, self.namespace, PLURAL, **kwargs
            )
        return self.custom.list_cluster_custom_object(GROUP, VERSION, PLURAL, **kwargs)

    def list_and_replace(self) -> str:
        resp = self._list_func()
        items = resp.get("items", [])
        for obj in items:
            obj.setdefault("apiVersion", f"{GROUP}/{VERSION}")
            obj.setdefault("kind", KIND)
        added, updated, removed = self.store.replace(items)
        for obj in added:
            self._notify("on_add", obj)
        for old, new in updated:
            self._notify("on_update", old, new)
        for key, obj in removed:
            self._notify("on_delete", DeletedFinalStateUnknown(key=key, obj=obj))
        self.has_synced.set()
        log.debug("[informer] listed %d %s objects", len(items), KIND)
        return resp.get("metadata", {}).get("resourceVersion", "")

    def _watch_once(self, resource_version: str) -> str:
        w = watch.Watch()
        with self._watch_lock:
            self._watch = w
        try:
            for event in w.stream(
                self._list_func,
                resource_version=resource_version,
                timeout_seconds=self.watch_timeout,
            ):
                if self._stop.is_set():
                    break
                etype = event["type"]
                obj = event["object"]
                if etype == "ERROR":
                    code = obj.get("code") if isinstance(obj, dict) else None
                    if code == 410:
                        return ""
                    log.warning("[informer] watch error: %s", obj)
                    return ""
                if etype == "BOOKMARK":
                    resource_version = obj["metadata"]["resourceVersion"]
                    continue

                resource_version = obj.get("metadata", {}).get("resourceVersion", resource_version)
                if etype == "ADDED" or etype == "MODIFIED":
                    old = self.store.put(obj)
                    if old is None:
                        self._notify("on_add", obj)
                    else:
                        self._notify("on_update", old, obj)
                elif etype == "DELETED":
                    self.store.pop(meta_namespace_key(obj))
                    self._notify("on_delete", obj)
        finally:
            w.stop()
            with self._watch_lock:
                self._watch = None
        return resource_version

    def _resync_loop(self) -> None:
        while not self._stop.wait(self.resync_period):
            for obj in self.store.list():
                self._notify("on_update", obj, obj)

    def run(self) -> None:
        """Blocks until stop(); list, then watch from the listed version."""
        resync = threading.Thread(target=self._resync_loop, name="informer-resync", daemon=True)
        resync.start()

        resource_version = ""
        while not self._stop.is_set():
            try:
                if not resource_version:
                    resource_version = self.list_and_replace()
                resource_version = self._watch_once(resource_version)
            except ApiException as e:
                if e.status == 410:
                    log.debug("[informer] resource version expired, relisting")
                else:
                    log.warning("[informer] list/watch failed: %s %s", e.status, e.reason)
                    self._stop.wait(5)
                resource_version = ""
            except urllib3.exceptions.HTTPError as e:
                log.warning("[informer] watch connection lost: %s", e)
                self._stop.wait(5)
                resource_version = ""

    def stop(self) -> None:
        self._stop.set()
        with self._watch_lock:
            if self._watch is not None:
                self._watch.stop()
