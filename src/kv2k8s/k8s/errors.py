# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/k8s/errors.py
from __future__ import annotations

from typing import Optional


class KubeApiError(RuntimeError):
    """Base class for cluster API failures."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFoundError(KubeApiError):
    """The requested object does not exist."""


class AlreadyExistsError(KubeApiError):
    """Create raced with another writer."""


class ConflictError(KubeApiError):
    """Optimistic concurrency failure (stale resourceVersion)."""
