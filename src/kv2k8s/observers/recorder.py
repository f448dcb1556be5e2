# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/observers/recorder.py
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from kubernetes import client
from kubernetes.client.rest import ApiException

from .events import BaseEvent

log = logging.getLogger("kv2k8s")


class KubeEventObserver:
    """
    Records bus events as core/v1 Events against the declaring resource,
    so `kubectl describe keyvaultsecret` shows the audit trail.
    """

    def __init__(self, core: client.CoreV1Api, *, component: str = "kv2k8s-controller"):
        self.core = core
        self.component = component

    def build(self, event: BaseEvent) -> client.CoreV1Event:
        ref = event.involved
        now = datetime.now(timezone.utc)
        return client.CoreV1Event(
            metadata=client.V1ObjectMeta(
                name=f"{ref.name}.{uuid.uuid4().hex[:16]}",
                namespace=ref.namespace,
            ),
            involved_object=client.V1ObjectReference(
                api_version=ref.api_version,
                kind=ref.kind,
                name=ref.name,
                namespace=ref.namespace,
                uid=ref.uid,
            ),
            type=event.type,
            reason=event.reason,
            message=event.message(),
            source=client.V1EventSource(component=self.component),
            reporting_component=self.component,
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )

    def notify(self, event: BaseEvent) -> None:
        body = self.build(event)
        try:
            self.core.create_namespaced_event(body.metadata.namespace, body)
        except ApiException as e:
            log.warning(
                "failed to record event %s for %s/%s: %s %s",
                event.reason, event.involved.namespace, event.involved.name, e.status, e.reason,
            )
