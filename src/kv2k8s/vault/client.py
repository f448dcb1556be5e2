# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/vault/client.py
"""
Azure Key Vault access.

One SecretClient / CertificateClient / KeyClient set is created per vault
name and reused. Authentication is whatever DefaultAzureCredential finds
(managed identity, workload identity, env service principal, az login).
"""

from __future__ import annotations

import base64
import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.identity import DefaultAzureCredential
from azure.keyvault.certificates import CertificateClient
from azure.keyvault.keys import KeyClient
from azure.keyvault.secrets import SecretClient

from kv2k8s.api.models import VaultRef
from kv2k8s.vault.certificate import Certificate
from kv2k8s.vault.errors import VaultError, VaultObjectNotFoundError, VaultTransientError

log = logging.getLogger("kv2k8s")

PKCS12_CONTENT_TYPE = "application/x-pkcs12"
PEM_CONTENT_TYPE = "application/x-pem-file"

_JWK_PUBLIC_FIELDS = ("n", "e", "crv", "x", "y")


@dataclass
class _VaultClients:
    secrets: SecretClient
    certificates: CertificateClient
    keys: KeyClient


def _b64url(v: bytes) -> str:
    return base64.urlsafe_b64encode(v).rstrip(b"=").decode("ascii")


def _enum_value(v: Any) -> str:
    return str(getattr(v, "value", v))


class AzureKeyVaultService:
    def __init__(self, *, credential: Any = None, dns_suffix: str = "vault.azure.net"):
        self.credential = credential or DefaultAzureCredential()
        self.dns_suffix = dns_suffix
        self._clients: dict[str, _VaultClients] = {}
        self._lock = threading.Lock()

    def vault_url(self, vault_name: str) -> str:
        return f"https://{vault_name}.{self.dns_suffix}"

    def _clients_for(self, vault_name: str) -> _VaultClients:
        with self._lock:
            clients = self._clients.get(vault_name)
            if clients is None:
                url = self.vault_url(vault_name)
                log.debug("[vault] creating Key Vault clients for %s", url)
                clients = _VaultClients(
                    secrets=SecretClient(vault_url=url, credential=self.credential),
                    certificates=CertificateClient(vault_url=url, credential=self.credential),
                    keys=KeyClient(vault_url=url, credential=self.credential),
                )
                self._clients[vault_name] = clients
            return clients

    def _call(self, vault: VaultRef, what: str, fn):
        target = f"{what} '{vault.object.name}' in vault '{vault.name}'"
        try:
            return fn()
        except ResourceNotFoundError as e:
            raise VaultObjectNotFoundError(f"{target} not found") from e
        except AzureError as e:
            raise VaultTransientError(f"failed to get {target}: {e}") from e

    def _parse(self, vault: VaultRef, fmt: str, fn) -> Certificate:
        try:
            return fn()
        except ValueError as e:
            raise VaultError(
                f"certificate '{vault.object.name}' in vault '{vault.name}' is not valid {fmt}: {e}"
            ) from e

    # ------------------------------------------------------------------

    def get_secret(self, vault: VaultRef) -> str:
        obj = vault.object
        clients = self._clients_for(vault.name)
        secret = self._call(
            vault, "secret",
            lambda: clients.secrets.get_secret(obj.name, version=obj.version),
        )
        return secret.value or ""

    def get_certificate(self, vault: VaultRef, *, export_private_key: bool = False) -> Certificate:
        """
        Without the private key the public certificate is read from the
        certificates API. Exporting the key requires reading the backing
        secret, which holds either a PKCS#12 bundle or a PEM file.
        """
        obj = vault.object
        clients = self._clients_for(vault.name)

        if not export_private_key:
            if obj.version:
                cert = self._call(
                    vault, "certificate",
                    lambda: clients.certificates.get_certificate_version(obj.name, obj.version),
                )
            else:
                cert = self._call(
                    vault, "certificate",
                    lambda: clients.certificates.get_certificate(obj.name),
                )
            return self._parse(vault, "DER", lambda: Certificate.from_der(bytes(cert.cer)))

        secret = self._call(
            vault, "certificate secret",
            lambda: clients.secrets.get_secret(obj.name, version=obj.version),
        )
        content_type = secret.properties.content_type
        if content_type == PEM_CONTENT_TYPE:
            return self._parse(vault, "PEM", lambda: Certificate.from_pem(secret.value or ""))
        if content_type in (None, PKCS12_CONTENT_TYPE):
            return self._parse(
                vault, "PKCS#12",
                lambda: Certificate.from_pkcs12(base64.b64decode(secret.value or "")),
            )
        raise VaultError(
            f"certificate '{obj.name}' in vault '{vault.name}' has unsupported content type '{content_type}'"
        )

    def get_key(self, vault: VaultRef) -> str:
        """Public part of the key as a JSON Web Key document."""
        obj = vault.object
        clients = self._clients_for(vault.name)
        key = self._call(
            vault, "key",
            lambda: clients.keys.get_key(obj.name, version=obj.version),
        )
        jwk = key.key
        doc: dict[str, Optional[str]] = {"kid": jwk.kid, "kty": _enum_value(jwk.kty)}
        for field in _JWK_PUBLIC_FIELDS:
            value = getattr(jwk, field, None)
            if value is None:
                continue
            if isinstance(value, (bytes, bytearray)):
                doc[field] = _b64url(bytes(value))
            else:
                doc[field] = _enum_value(value)
        return json.dumps(doc, sort_keys=True)
