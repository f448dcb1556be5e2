# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/config/models.py

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field


class KubeSettings(BaseModel):
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    in_cluster: bool = False
    # empty = watch every namespace
    namespace: Optional[str] = None


class QueueSettings(BaseModel):
    base_delay: float = Field(0.005, gt=0)
    max_delay: float = Field(1000.0, gt=0)
    max_retries: int = Field(5, ge=0)


class WorkerSettings(BaseModel):
    structural: int = Field(1, ge=1)
    vault: int = Field(1, ge=1)


class VaultSettings(BaseModel):
    dns_suffix: str = "vault.azure.net"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: Optional[Path] = None


class ControllerConfig(BaseModel):
    kube: KubeSettings = Field(default_factory=KubeSettings)
    resync_seconds: float = Field(60.0, gt=0)
    watch_timeout_seconds: int = Field(300, gt=0)
    workers: WorkerSettings = Field(default_factory=WorkerSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    status_write_attempts: int = Field(5, ge=1)
    vault: VaultSettings = Field(default_factory=VaultSettings)
    event_component: str = "kv2k8s-controller"
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
