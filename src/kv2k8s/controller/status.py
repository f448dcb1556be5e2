# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/controller/status.py
"""
Writes the controller-owned status fields of a KeyVaultSecret.

Both reconcilers write into the same status block (secret fields vs.
config map fields), so every write starts from a fresh GET and only
touches its own fields. A resourceVersion conflict re-runs the whole
read-modify-write.
"""

from __future__ import annotations

import logging
from typing import Callable

from kv2k8s.k8s.client import ClusterClient
from kv2k8s.k8s.errors import ConflictError
from kv2k8s.utils.hashing import ConfigMapDigest, SecretDigest
from kv2k8s.utils.helpers import utc_now_rfc3339
from kv2k8s.utils.retry import retry

log = logging.getLogger("kv2k8s")


class StatusPersister:
    def __init__(
        self,
        cluster: ClusterClient,
        *,
        attempts: int = 5,
        clock: Callable[[], str] = utc_now_rfc3339,
    ):
        self.cluster = cluster
        self.attempts = attempts
        self.clock = clock

    def record_secret(self, namespace: str, name: str, secret_name: str, digest: SecretDigest) -> None:
        self._write(namespace, name, {"secretName": secret_name, "secretHash": digest})

    def record_config_map(
        self, namespace: str, name: str, config_map_name: str, digest: ConfigMapDigest
    ) -> None:
        self._write(namespace, name, {"configMapName": config_map_name, "configMapHash": digest})

    def _write(self, namespace: str, name: str, fields: dict) -> None:
        def on_retry(attempt: int, exc: Exception) -> None:
            log.debug("[status] %s/%s conflict on attempt %d, re-reading: %s", namespace, name, attempt, exc)

        @retry(attempts=self.attempts, retry_on=(ConflictError,), on_retry=on_retry)
        def read_modify_write() -> None:
            fresh = self.cluster.get_vault_secret(namespace, name)
            status = dict(fresh.get("status") or {})
            status.update(fields)
            status["lastVaultUpdate"] = self.clock()
            fresh["status"] = status
            self.cluster.update_vault_secret_status(namespace, name, fresh)

        read_modify_write()
        log.debug("[status] %s/%s updated %s", namespace, name, ", ".join(sorted(fields)))
