# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/registry.py

from __future__ import annotations

from typing import Callable

from kv2k8s.api.models import KeyVaultSecret, VaultObjectType
from kv2k8s.controller.errors import UnsupportedObjectTypeError
from kv2k8s.handlers.base import ObjectHandler, VaultService
from kv2k8s.handlers.certificate import CertificateHandler
from kv2k8s.handlers.key import KeyHandler
from kv2k8s.handlers.multikey import MultiKeySecretHandler
from kv2k8s.handlers.secret import SecretHandler
from kv2k8s.handlers.transformers import Transformer


def _secret(kvs: KeyVaultSecret, vault: VaultService) -> ObjectHandler:
    return SecretHandler(kvs, vault, Transformer(kvs.spec.output.transform))


HANDLERS: dict[VaultObjectType, Callable[[KeyVaultSecret, VaultService], ObjectHandler]] = {
    VaultObjectType.SECRET: _secret,
    VaultObjectType.CERTIFICATE: CertificateHandler,
    VaultObjectType.KEY: KeyHandler,
    VaultObjectType.MULTI_KEY_VALUE_SECRET: MultiKeySecretHandler,
}


def object_type_of(kvs: KeyVaultSecret) -> VaultObjectType:
    raw = kvs.spec.vault.object.type
    try:
        return VaultObjectType(raw)
    except ValueError:
        raise UnsupportedObjectTypeError(
            f"{kvs.key}: vault object type '{raw}' not supported "
            f"(valid: {', '.join(t.value for t in VaultObjectType)})"
        ) from None


def build_handler(kvs: KeyVaultSecret, vault: VaultService) -> ObjectHandler:
    """
    Select the handler for the resource's vault object type. Building the
    secret handler validates the transform chain, so an unknown transform
    fails here before anything is fetched.
    """
    return HANDLERS[object_type_of(kvs)](kvs, vault)
