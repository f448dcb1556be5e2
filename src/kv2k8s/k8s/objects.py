# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/k8s/objects.py
"""
Builders for the native output objects and the ownership checks that
guard every write into them.
"""

from __future__ import annotations

from typing import Mapping, Optional

from kubernetes import client

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.utils.helpers import b64decode_str, b64encode_bytes


def owner_reference(kvs: KeyVaultSecret) -> client.V1OwnerReference:
    return client.V1OwnerReference(
        api_version=kvs.api_version,
        kind=kvs.kind,
        name=kvs.metadata.name,
        uid=kvs.metadata.uid,
        controller=True,
        block_owner_deletion=True,
    )


def controller_of(obj) -> Optional[client.V1OwnerReference]:
    refs = (obj.metadata.owner_references or []) if obj.metadata else []
    for ref in refs:
        if ref.controller:
            return ref
    return None


def is_owned_by(obj, kvs: KeyVaultSecret) -> bool:
    """True when obj's controller reference points at exactly this resource."""
    ref = controller_of(obj)
    if ref is None:
        return False
    return (
        ref.kind == kvs.kind
        and ref.name == kvs.metadata.name
        and ref.uid == kvs.metadata.uid
    )


def new_secret(kvs: KeyVaultSecret, values: Optional[Mapping[str, bytes]] = None) -> client.V1Secret:
    out = kvs.spec.output.secret
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(
            name=out.name,
            namespace=kvs.metadata.namespace,
            owner_references=[owner_reference(kvs)],
        ),
        type=out.type,
        data=encode_secret_data(values or {}),
    )


def new_config_map(kvs: KeyVaultSecret, values: Optional[Mapping[str, str]] = None) -> client.V1ConfigMap:
    out = kvs.spec.output.config_map
    return client.V1ConfigMap(
        api_version="v1",
        kind="ConfigMap",
        metadata=client.V1ObjectMeta(
            name=out.name,
            namespace=kvs.metadata.namespace,
            owner_references=[owner_reference(kvs)],
        ),
        data=dict(values or {}),
    )


def encode_secret_data(values: Mapping[str, bytes]) -> dict[str, str]:
    return {k: b64encode_bytes(v) for k, v in values.items()}


def decode_secret_data(secret: client.V1Secret) -> dict[str, bytes]:
    return {k: b64decode_str(v) for k, v in (secret.data or {}).items()}


def with_secret_data(
    secret: client.V1Secret,
    values: Mapping[str, bytes],
    *,
    replace: bool,
) -> client.V1Secret:
    """
    Return a copy of secret carrying values. With replace=False the values
    are merged over the existing keys, otherwise they become the whole data.
    """
    data = {} if replace else dict(secret.data or {})
    data.update(encode_secret_data(values))
    return client.V1Secret(
        api_version=secret.api_version,
        kind=secret.kind,
        metadata=secret.metadata,
        type=secret.type,
        data=data,
    )


def with_config_map_data(
    cm: client.V1ConfigMap,
    values: Mapping[str, str],
    *,
    replace: bool,
) -> client.V1ConfigMap:
    data = {} if replace else dict(cm.data or {})
    data.update(values)
    return client.V1ConfigMap(
        api_version=cm.api_version,
        kind=cm.kind,
        metadata=cm.metadata,
        data=data,
        binary_data=cm.binary_data,
    )
