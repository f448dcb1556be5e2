# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/utils/helpers.py

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any, Mapping


def meta_namespace_key(obj: Mapping[str, Any]) -> str:
    """
    Build the "<namespace>/<name>" work key for a raw object dict.
    Cluster-scoped objects (no namespace) are keyed by name only.
    """
    meta = obj.get("metadata") or {}
    name = meta.get("name")
    if not name:
        raise ValueError("object has no metadata.name")
    ns = meta.get("namespace")
    return f"{ns}/{name}" if ns else name


def split_key(key: str) -> tuple[str, str]:
    parts = key.split("/")
    if len(parts) == 2 and all(parts):
        return parts[0], parts[1]
    raise ValueError(f"invalid resource key: {key!r}")


def b64encode_bytes(v: bytes) -> str:
    return base64.b64encode(v).decode("ascii")


def b64decode_str(v: str) -> bytes:
    return base64.b64decode(v.encode("ascii"), validate=True)


def utc_now_rfc3339() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
