# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/api/models.py

from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GROUP = "kv2k8s.io"
VERSION = "v1"
PLURAL = "keyvaultsecrets"
KIND = "KeyVaultSecret"
API_VERSION = f"{GROUP}/{VERSION}"


class VaultObjectType(str, Enum):
    SECRET = "secret"
    CERTIFICATE = "certificate"
    KEY = "key"
    MULTI_KEY_VALUE_SECRET = "multi-key-value-secret"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ObjectMeta(_CamelModel):
    name: str
    namespace: str = "default"
    uid: str = ""
    resource_version: str = ""
    generation: Optional[int] = None


class VaultObject(_CamelModel):
    name: str
    # Kept as a plain string; converted to VaultObjectType at handler dispatch.
    type: str
    version: Optional[str] = None
    content_type: Optional[str] = None


class VaultRef(_CamelModel):
    name: str
    object: VaultObject


class SecretOutput(_CamelModel):
    name: str = ""
    data_key: Optional[str] = None
    type: str = "Opaque"


class ConfigMapOutput(_CamelModel):
    name: str = ""
    data_key: Optional[str] = None


class Output(_CamelModel):
    transform: List[str] = Field(default_factory=list)
    secret: Optional[SecretOutput] = None
    config_map: Optional[ConfigMapOutput] = None


class KeyVaultSecretSpec(_CamelModel):
    vault: VaultRef
    output: Output = Field(default_factory=Output)


class KeyVaultSecretStatus(_CamelModel):
    secret_name: str = ""
    secret_hash: str = ""
    config_map_name: str = ""
    config_map_hash: str = ""
    last_vault_update: Optional[str] = None


class KeyVaultSecret(_CamelModel):
    """
    The declaring resource: "project this vault object into a native
    secret and/or config map".
    """

    api_version: str = API_VERSION
    kind: str = KIND
    metadata: ObjectMeta
    spec: KeyVaultSecretSpec
    status: KeyVaultSecretStatus = Field(default_factory=KeyVaultSecretStatus)

    @classmethod
    def from_object(cls, obj: Any) -> "KeyVaultSecret":
        if isinstance(obj, KeyVaultSecret):
            return obj.model_copy(deep=True)
        if not isinstance(obj, dict):
            raise TypeError(f"expected a {KIND} mapping, got {type(obj).__name__}")
        return cls.model_validate(obj)

    @property
    def key(self) -> str:
        return f"{self.metadata.namespace}/{self.metadata.name}"

    def has_output_secret(self) -> bool:
        return self.spec.output.secret is not None and bool(self.spec.output.secret.name)

    def has_output_config_map(self) -> bool:
        return self.spec.output.config_map is not None and bool(self.spec.output.config_map.name)

    def has_output_defined(self) -> bool:
        return self.has_output_secret() or self.has_output_config_map()
