# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/base.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

from kv2k8s.api.models import KeyVaultSecret, VaultRef
from kv2k8s.controller.errors import ConfigurationError
from kv2k8s.vault.certificate import Certificate

SECRET_TYPE_TLS = "kubernetes.io/tls"
SECRET_TYPE_DOCKER_CONFIG_JSON = "kubernetes.io/dockerconfigjson"
TLS_CERT_KEY = "tls.crt"
TLS_PRIVATE_KEY_KEY = "tls.key"
DOCKER_CONFIG_JSON_KEY = ".dockerconfigjson"


class VaultService(Protocol):
    def get_secret(self, vault: VaultRef) -> str: ...
    def get_certificate(self, vault: VaultRef, *, export_private_key: bool = False) -> Certificate: ...
    def get_key(self, vault: VaultRef) -> str: ...


class ObjectHandler(ABC):
    """
    Turns one vault object into output data for a declaring resource.

    replaces_data tells the vault reconciler whether the produced mapping
    is the complete output (replace) or a set of keys to merge over
    whatever the output object already holds.
    """

    replaces_data: bool = False

    def __init__(self, kvs: KeyVaultSecret, vault: VaultService):
        self.kvs = kvs
        self.vault = vault

    @property
    def vault_ref(self) -> VaultRef:
        return self.kvs.spec.vault

    @property
    def secret_type(self) -> str:
        return self.kvs.spec.output.secret.type

    def secret_data_key(self) -> str:
        key = self.kvs.spec.output.secret.data_key
        if not key:
            raise ConfigurationError(
                f"{self.kvs.key}: output.secret.dataKey is required for secret type '{self.secret_type}'"
            )
        return key

    def config_map_data_key(self) -> str:
        key = self.kvs.spec.output.config_map.data_key
        if not key:
            raise ConfigurationError(f"{self.kvs.key}: output.configMap.dataKey is required")
        return key

    @abstractmethod
    def produce_secret_data(self) -> dict[str, bytes]: ...

    @abstractmethod
    def produce_config_map_data(self) -> dict[str, str]: ...
