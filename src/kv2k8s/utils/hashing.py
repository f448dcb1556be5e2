# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/utils/hashing.py
"""
Content digests used for drift detection.

Secret payloads (bytes) and config map payloads (str) are hashed with
different domain prefixes, so a secret digest never equals a config map
digest even for the same logical content.
"""

from __future__ import annotations

import hashlib
from typing import Mapping, NewType

SecretDigest = NewType("SecretDigest", str)
ConfigMapDigest = NewType("ConfigMapDigest", str)

_SECRET_DOMAIN = b"kv2k8s/secret\x00"
_CONFIGMAP_DOMAIN = b"kv2k8s/configmap\x00"


def _feed(h, chunk: bytes) -> None:
    # length-prefix every field so ("ab", "c") and ("a", "bc") differ
    h.update(len(chunk).to_bytes(8, "big"))
    h.update(chunk)


def secret_digest(values: Mapping[str, bytes]) -> SecretDigest:
    h = hashlib.sha256(_SECRET_DOMAIN)
    for k in sorted(values):
        _feed(h, k.encode("utf-8"))
        _feed(h, bytes(values[k]))
    return SecretDigest(h.hexdigest())


def config_map_digest(values: Mapping[str, str]) -> ConfigMapDigest:
    h = hashlib.sha256(_CONFIGMAP_DOMAIN)
    for k in sorted(values):
        _feed(h, k.encode("utf-8"))
        _feed(h, values[k].encode("utf-8"))
    return ConfigMapDigest(h.hexdigest())
