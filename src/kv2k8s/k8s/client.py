# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/k8s/client.py
from __future__ import annotations

from typing import Any, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from kv2k8s.api.models import GROUP, PLURAL, VERSION
from kv2k8s.k8s.errors import AlreadyExistsError, ConflictError, KubeApiError, NotFoundError


def load_kube_config(
    *,
    in_cluster: bool = False,
    kubeconfig: Optional[str] = None,
    context: Optional[str] = None,
) -> None:
    """
    Load cluster credentials: the service account token when running
    in-cluster, otherwise the given (or default) kubeconfig.
    """
    if in_cluster:
        config.load_incluster_config()
    else:
        config.load_kube_config(config_file=kubeconfig, context=context)


def _translate(exc: ApiException, what: str, *, on_conflict=ConflictError) -> KubeApiError:
    if exc.status == 404:
        return NotFoundError(f"{what} not found", status=404)
    if exc.status == 409:
        return on_conflict(f"{what}: {exc.reason}", status=409)
    return KubeApiError(f"{what}: {exc.status} {exc.reason}", status=exc.status)


class ClusterClient:
    """
    Namespace-scoped reads and writes of secrets, config maps and the
    KeyVaultSecret status subresource.
    """

    def __init__(
        self,
        *,
        core: Optional[client.CoreV1Api] = None,
        custom: Optional[client.CustomObjectsApi] = None,
    ):
        self.core = core or client.CoreV1Api()
        self.custom = custom or client.CustomObjectsApi()

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def get_secret(self, namespace: str, name: str) -> client.V1Secret:
        try:
            return self.core.read_namespaced_secret(name, namespace)
        except ApiException as e:
            raise _translate(e, f"secret {namespace}/{name}") from e

    def create_secret(self, namespace: str, body: client.V1Secret) -> client.V1Secret:
        try:
            return self.core.create_namespaced_secret(namespace, body)
        except ApiException as e:
            raise _translate(
                e, f"secret {namespace}/{body.metadata.name}", on_conflict=AlreadyExistsError
            ) from e

    def update_secret(self, namespace: str, body: client.V1Secret) -> client.V1Secret:
        try:
            return self.core.replace_namespaced_secret(body.metadata.name, namespace, body)
        except ApiException as e:
            raise _translate(e, f"secret {namespace}/{body.metadata.name}") from e

    # ------------------------------------------------------------------
    # Config maps
    # ------------------------------------------------------------------

    def get_config_map(self, namespace: str, name: str) -> client.V1ConfigMap:
        try:
            return self.core.read_namespaced_config_map(name, namespace)
        except ApiException as e:
            raise _translate(e, f"configmap {namespace}/{name}") from e

    def create_config_map(self, namespace: str, body: client.V1ConfigMap) -> client.V1ConfigMap:
        try:
            return self.core.create_namespaced_config_map(namespace, body)
        except ApiException as e:
            raise _translate(
                e, f"configmap {namespace}/{body.metadata.name}", on_conflict=AlreadyExistsError
            ) from e

    def update_config_map(self, namespace: str, body: client.V1ConfigMap) -> client.V1ConfigMap:
        try:
            return self.core.replace_namespaced_config_map(body.metadata.name, namespace, body)
        except ApiException as e:
            raise _translate(e, f"configmap {namespace}/{body.metadata.name}") from e

    # ------------------------------------------------------------------
    # KeyVaultSecret
    # ------------------------------------------------------------------

    def get_vault_secret(self, namespace: str, name: str) -> dict[str, Any]:
        """Fresh read from the API server (bypasses the informer cache)."""
        try:
            return self.custom.get_namespaced_custom_object(GROUP, VERSION, namespace, PLURAL, name)
        except ApiException as e:
            raise _translate(e, f"keyvaultsecret {namespace}/{name}") from e

    def update_vault_secret_status(self, namespace: str, name: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            return self.custom.replace_namespaced_custom_object_status(
                GROUP, VERSION, namespace, PLURAL, name, body
            )
        except ApiException as e:
            raise _translate(e, f"keyvaultsecret {namespace}/{name} status") from e
