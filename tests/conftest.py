# tests/conftest.py
from __future__ import annotations

import copy

import pytest

from kv2k8s.api.models import API_VERSION, KIND
from kv2k8s.controller.informer import KeyVaultSecretLister, Store
from kv2k8s.k8s.errors import AlreadyExistsError, ConflictError, NotFoundError
from kv2k8s.observers.dispatcher import EventBus
from kv2k8s.vault.errors import VaultObjectNotFoundError


# ---- Fakes ----

class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)
    def of(self, cls): return [e for e in self.events if isinstance(e, cls)]


class FakeVault:
    """
    In-memory vault keyed by object name. Set .fail to an exception to make
    every fetch raise it.
    """
    def __init__(self):
        self.secrets = {}
        self.certificates = {}
        self.keys = {}
        self.fail = None
        self.calls = []

    def _lookup(self, table, vault):
        self.calls.append((vault.name, vault.object.name))
        if self.fail is not None:
            raise self.fail
        try:
            return table[vault.object.name]
        except KeyError:
            raise VaultObjectNotFoundError(f"{vault.object.name} not found") from None

    def get_secret(self, vault):
        return self._lookup(self.secrets, vault)

    def get_certificate(self, vault, *, export_private_key=False):
        return self._lookup(self.certificates, vault)

    def get_key(self, vault):
        return self._lookup(self.keys, vault)


class FakeCluster:
    """
    Mimics ClusterClient over dicts of kubernetes model objects. KeyVaultSecret
    status writes land in the same Store the lister reads from, as the
    informer would deliver them.
    """
    def __init__(self, store: Store):
        self.store = store
        self.secrets = {}
        self.config_maps = {}
        self.writes = []
        self.status_writes = []
        self.status_conflicts = 0

    # secrets
    def get_secret(self, namespace, name):
        try:
            return copy.deepcopy(self.secrets[(namespace, name)])
        except KeyError:
            raise NotFoundError(f"secret {namespace}/{name} not found", status=404) from None

    def create_secret(self, namespace, body):
        key = (namespace, body.metadata.name)
        if key in self.secrets:
            raise AlreadyExistsError(f"secret {namespace}/{body.metadata.name}", status=409)
        self.secrets[key] = copy.deepcopy(body)
        self.writes.append(("create", "Secret", namespace, body.metadata.name))
        return body

    def update_secret(self, namespace, body):
        key = (namespace, body.metadata.name)
        if key not in self.secrets:
            raise NotFoundError(f"secret {namespace}/{body.metadata.name} not found", status=404)
        self.secrets[key] = copy.deepcopy(body)
        self.writes.append(("update", "Secret", namespace, body.metadata.name))
        return body

    # config maps
    def get_config_map(self, namespace, name):
        try:
            return copy.deepcopy(self.config_maps[(namespace, name)])
        except KeyError:
            raise NotFoundError(f"configmap {namespace}/{name} not found", status=404) from None

    def create_config_map(self, namespace, body):
        key = (namespace, body.metadata.name)
        if key in self.config_maps:
            raise AlreadyExistsError(f"configmap {namespace}/{body.metadata.name}", status=409)
        self.config_maps[key] = copy.deepcopy(body)
        self.writes.append(("create", "ConfigMap", namespace, body.metadata.name))
        return body

    def update_config_map(self, namespace, body):
        key = (namespace, body.metadata.name)
        if key not in self.config_maps:
            raise NotFoundError(f"configmap {namespace}/{body.metadata.name} not found", status=404)
        self.config_maps[key] = copy.deepcopy(body)
        self.writes.append(("update", "ConfigMap", namespace, body.metadata.name))
        return body

    # KeyVaultSecret
    def get_vault_secret(self, namespace, name):
        obj = self.store.get(f"{namespace}/{name}")
        if obj is None:
            raise NotFoundError(f"keyvaultsecret {namespace}/{name} not found", status=404)
        return copy.deepcopy(obj)

    def update_vault_secret_status(self, namespace, name, body):
        if self.status_conflicts:
            self.status_conflicts -= 1
            raise ConflictError(f"keyvaultsecret {namespace}/{name} status: Conflict", status=409)
        body = copy.deepcopy(body)
        rv = int(body["metadata"].get("resourceVersion") or 0)
        body["metadata"]["resourceVersion"] = str(rv + 1)
        self.store.put(body)
        self.status_writes.append(copy.deepcopy(body["status"]))
        return body


def kvs_dict(
    name="foo",
    namespace="ns",
    *,
    uid=None,
    resource_version="1",
    vault_name="my-vault",
    object_name="db-password",
    object_type="secret",
    content_type=None,
    secret=None,
    config_map=None,
    transform=None,
    status=None,
):
    """Raw KeyVaultSecret as the API server would return it."""
    obj = {"name": object_name, "type": object_type}
    if content_type:
        obj["contentType"] = content_type
    output = {}
    if secret is not None:
        output["secret"] = secret
    if config_map is not None:
        output["configMap"] = config_map
    if transform:
        output["transform"] = transform
    d = {
        "apiVersion": API_VERSION,
        "kind": KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": uid or f"uid-{name}",
            "resourceVersion": resource_version,
        },
        "spec": {"vault": {"name": vault_name, "object": obj}, "output": output},
    }
    if status is not None:
        d["status"] = status
    return d


# ---- Fixtures ----

@pytest.fixture
def store():
    return Store()


@pytest.fixture
def lister(store):
    return KeyVaultSecretLister(store)


@pytest.fixture
def cluster(store):
    return FakeCluster(store)


@pytest.fixture
def vault():
    return FakeVault()


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture
def bus(capture):
    return EventBus([capture])


@pytest.fixture
def make_kvs():
    return kvs_dict
