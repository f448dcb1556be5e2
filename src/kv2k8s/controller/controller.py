# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/controller.py
"""
Worker pools draining the structural and vault-drift queues.

Each worker takes one key at a time, runs the matching reconciler and
reports the outcome back to its queue: success forgets the key's backoff,
failure requeues it rate limited until max_retries is reached.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from kv2k8s.controller.errors import ConfigurationError
from kv2k8s.controller.queue import RateLimitingQueue

log = logging.getLogger("kv2k8s")

SyncFunc = Callable[[str], Optional[bool]]


class Controller:
    def __init__(
        self,
        *,
        structural_queue: RateLimitingQueue,
        vault_queue: RateLimitingQueue,
        sync_output: SyncFunc,
        sync_vault: SyncFunc,
        structural_workers: int = 1,
        vault_workers: int = 1,
        max_retries: int = 5,
        exists: Optional[Callable[[str], bool]] = None,
    ):
        self.structural_queue = structural_queue
        self.vault_queue = vault_queue
        self.sync_output = sync_output
        self.sync_vault = sync_vault
        self.structural_workers = structural_workers
        self.vault_workers = vault_workers
        self.max_retries = max_retries
        self.exists = exists
        self._threads: list[threading.Thread] = []

    # ------------------------------------------------------------------
    # One item
    # ------------------------------------------------------------------

    def process_next_item(self, queue: RateLimitingQueue, sync: SyncFunc, timeout: Optional[float] = None) -> bool:
        """
        Handle a single key. Returns False once the queue is shut down;
        a timeout with nothing to do still returns True.
        """
        key, shutdown = queue.get(timeout=timeout)
        if shutdown:
            return False
        if key is None:
            return True

        try:
            try:
                found = sync(key)
            except Exception as e:
                self.handle_err(queue, key, e)
                return True
            self.handle_err(queue, key, None)
            if found and queue is self.structural_queue:
                # freshly created outputs get their content without waiting for a resync
                self.vault_queue.add(key)
        finally:
            queue.done(key)
        return True

    def handle_err(self, queue: RateLimitingQueue, key: str, err: Optional[Exception]) -> None:
        if err is None:
            queue.forget(key)
            return

        if self.exists is not None and not self.exists(key):
            # deleted while the sync was running; the delete already cleared its backoff
            log.debug("[%s] %s was deleted during sync, not retrying: %s", queue.name, key, err)
            queue.forget(key)
            return

        if isinstance(err, ConfigurationError):
            log.error(
                "[%s] %s is misconfigured and will keep failing until it is fixed: %s",
                queue.name, key, err,
            )
        else:
            log.warning("[%s] error syncing %s: %s", queue.name, key, err)

        if queue.num_requeues(key) < self.max_retries:
            queue.add_rate_limited(key)
            return

        log.error("[%s] dropping %s after %d retries: %s", queue.name, key, self.max_retries, err)
        queue.forget(key)

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _worker(self, queue: RateLimitingQueue, sync: SyncFunc) -> None:
        while self.process_next_item(queue, sync):
            pass

    def start(self) -> None:
        pools = (
            (self.structural_queue, self.sync_output, self.structural_workers),
            (self.vault_queue, self.sync_vault, self.vault_workers),
        )
        for queue, sync, count in pools:
            for i in range(count):
                t = threading.Thread(
                    target=self._worker,
                    args=(queue, sync),
                    name=f"{queue.name}-worker-{i}",
                    daemon=True,
                )
                t.start()
                self._threads.append(t)
        log.info(
            "[controller] started %d structural and %d vault workers",
            self.structural_workers, self.vault_workers,
        )

    def shutdown(self, timeout: Optional[float] = None) -> None:
        self.structural_queue.shutdown()
        self.vault_queue.shutdown()
        for t in self._threads:
            t.join(timeout)
        self._threads.clear()
        log.info("[controller] workers stopped")

    def run(self, stop: threading.Event) -> None:
        """Start the workers and block until stop is set."""
        self.start()
        stop.wait()
        self.shutdown()
