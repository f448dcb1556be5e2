# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/key.py
from __future__ import annotations

from kv2k8s.handlers.base import ObjectHandler


class KeyHandler(ObjectHandler):
    """Vault cryptographic key, emitted as its public JSON Web Key."""

    def produce_secret_data(self) -> dict[str, bytes]:
        data_key = self.secret_data_key()
        return {data_key: self.vault.get_key(self.vault_ref).encode("utf-8")}

    def produce_config_map_data(self) -> dict[str, str]:
        data_key = self.config_map_data_key()
        return {data_key: self.vault.get_key(self.vault_ref)}
