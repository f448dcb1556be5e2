# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, ClassVar, Dict

from kv2k8s.api.models import KeyVaultSecret
from kv2k8s.utils.helpers import utc_now_rfc3339

NORMAL = "Normal"
WARNING = "Warning"


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class ObjectRef:
    api_version: str
    kind: str
    namespace: str
    name: str
    uid: str

    @classmethod
    def from_kvs(cls, kvs: KeyVaultSecret) -> "ObjectRef":
        return cls(
            api_version=kvs.api_version,
            kind=kvs.kind,
            namespace=kvs.metadata.namespace,
            name=kvs.metadata.name,
            uid=kvs.metadata.uid,
        )


@dataclass(frozen=True)
class BaseEvent:
    ts: str               # ISO timestamp
    involved: ObjectRef   # the declaring resource the event is recorded against

    type: ClassVar[str] = NORMAL
    reason: ClassVar[str] = ""

    def message(self) -> str:
        raise NotImplementedError

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(kvs: KeyVaultSecret) -> Dict[str, Any]:
    return {
        "ts": utc_now_rfc3339(),
        "involved": ObjectRef.from_kvs(kvs),
    }


# ---------------------------------------------------------------------
# Output lifecycle (structural queue)
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class OutputCreated(BaseEvent):
    output_kind: str      # "Secret" | "ConfigMap"
    output_name: str

    reason: ClassVar[str] = "Created"

    def message(self) -> str:
        return f"{self.output_kind} {self.output_name} created"


@dataclass(frozen=True)
class OutputConflict(BaseEvent):
    output_kind: str
    output_name: str

    type: ClassVar[str] = WARNING
    reason: ClassVar[str] = "ErrResourceExists"

    def message(self) -> str:
        return (
            f"Resource {self.output_kind} {self.output_name} already exists "
            f"and is not managed by {self.involved.kind} {self.involved.name}"
        )


# ---------------------------------------------------------------------
# Vault lifecycle (vault-drift queue)
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class OutputUpdated(BaseEvent):
    output_kind: str
    output_name: str

    reason: ClassVar[str] = "SyncedWithVault"

    def message(self) -> str:
        return f"{self.output_kind} {self.output_name} updated with new content from Key Vault"


@dataclass(frozen=True)
class VaultFetchFailed(BaseEvent):
    vault_name: str
    object_name: str
    error: str

    type: ClassVar[str] = WARNING
    reason: ClassVar[str] = "ErrVault"

    def message(self) -> str:
        return (
            f"Failed to get '{self.object_name}' from Key Vault '{self.vault_name}': {self.error}"
        )


@dataclass(frozen=True)
class ConfigurationInvalid(BaseEvent):
    error: str

    type: ClassVar[str] = WARNING
    reason: ClassVar[str] = "InvalidConfiguration"

    def message(self) -> str:
        return self.error
