# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/secret.py
from __future__ import annotations

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.controller.errors import ConfigurationError
from kv2k8s.handlers.base import (
    DOCKER_CONFIG_JSON_KEY,
    SECRET_TYPE_DOCKER_CONFIG_JSON,
    SECRET_TYPE_TLS,
    TLS_CERT_KEY,
    TLS_PRIVATE_KEY_KEY,
    ObjectHandler,
    VaultService,
)
from kv2k8s.handlers.transformers import Transformer
from kv2k8s.vault.certificate import Certificate


class SecretHandler(ObjectHandler):
    """Plain vault secret, passed through the output transform chain."""

    def __init__(self, kvs: KeyVaultSecret, vault: VaultService, transformer: Transformer):
        super().__init__(kvs, vault)
        self.transformer = transformer

    def _value(self) -> str:
        return self.transformer(self.vault.get_secret(self.vault_ref))

    def produce_secret_data(self) -> dict[str, bytes]:
        value = self._value()

        if self.secret_type == SECRET_TYPE_TLS:
            try:
                cert = Certificate.from_pem(value)
                key_pem = cert.export_private_key_pem()
            except ValueError as e:
                raise ConfigurationError(
                    f"{self.kvs.key}: vault secret is not a PEM certificate with private key: {e}"
                ) from e
            return {
                TLS_CERT_KEY: cert.export_certificate_pem(),
                TLS_PRIVATE_KEY_KEY: key_pem,
            }

        if self.secret_type == SECRET_TYPE_DOCKER_CONFIG_JSON:
            return {DOCKER_CONFIG_JSON_KEY: value.encode("utf-8")}

        return {self.secret_data_key(): value.encode("utf-8")}

    def produce_config_map_data(self) -> dict[str, str]:
        return {self.config_map_data_key(): self._value()}
