# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/multikey.py
from __future__ import annotations

import json

import yaml

from kv2k8s.controller.errors import ConfigurationError
from kv2k8s.handlers.base import ObjectHandler

JSON_CONTENT_TYPE = "application/x-json"
YAML_CONTENT_TYPE = "application/x-yaml"


class MultiKeySecretHandler(ObjectHandler):
    """
    A vault secret whose value is itself a flat JSON or YAML mapping.
    Every entry becomes one key of the output, replacing its data.
    """

    replaces_data = True

    def _values(self) -> dict[str, str]:
        content_type = self.vault_ref.object.content_type
        if not content_type:
            raise ConfigurationError(
                f"{self.kvs.key}: vault.object.contentType is required for multi-key-value-secret"
            )

        raw = self.vault.get_secret(self.vault_ref)
        try:
            if content_type == JSON_CONTENT_TYPE:
                parsed = json.loads(raw)
            elif content_type == YAML_CONTENT_TYPE:
                # BaseLoader keeps every scalar as the text written in the vault
                parsed = yaml.load(raw, Loader=yaml.BaseLoader)
            else:
                raise ConfigurationError(
                    f"{self.kvs.key}: unsupported contentType '{content_type}' "
                    f"(valid: {JSON_CONTENT_TYPE}, {YAML_CONTENT_TYPE})"
                )
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"{self.kvs.key}: cannot parse vault secret as {content_type}: {e}") from e

        if not isinstance(parsed, dict):
            raise ConfigurationError(
                f"{self.kvs.key}: expected a key/value mapping in vault secret, got {type(parsed).__name__}"
            )
        values = {}
        for k, v in parsed.items():
            if v is None:
                v = ""
            if not isinstance(v, str):
                raise ConfigurationError(
                    f"{self.kvs.key}: value of '{k}' in vault secret must be a string, "
                    f"got {type(v).__name__}"
                )
            values[str(k)] = v
        return values

    def produce_secret_data(self) -> dict[str, bytes]:
        return {k: v.encode("utf-8") for k, v in self._values().items()}

    def produce_config_map_data(self) -> dict[str, str]:
        return self._values()
