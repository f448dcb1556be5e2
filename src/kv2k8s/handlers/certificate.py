# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/certificate.py
from __future__ import annotations

from kv2k8s.controller.errors import ConfigurationError
from kv2k8s.handlers.base import SECRET_TYPE_TLS, TLS_CERT_KEY, TLS_PRIVATE_KEY_KEY, ObjectHandler


class CertificateHandler(ObjectHandler):
    """
    Vault certificate. TLS secrets get certificate chain and private key;
    everything else only gets the public certificate under dataKey.
    """

    def produce_secret_data(self) -> dict[str, bytes]:
        if self.secret_type == SECRET_TYPE_TLS:
            cert = self.vault.get_certificate(self.vault_ref, export_private_key=True)
            try:
                key_pem = cert.export_private_key_pem()
            except ValueError as e:
                raise ConfigurationError(
                    f"{self.kvs.key}: certificate cannot back a {SECRET_TYPE_TLS} secret: {e}"
                ) from e
            return {
                TLS_CERT_KEY: cert.export_certificate_pem(),
                TLS_PRIVATE_KEY_KEY: key_pem,
            }

        data_key = self.secret_data_key()
        cert = self.vault.get_certificate(self.vault_ref, export_private_key=False)
        return {data_key: cert.export_certificate_pem()}

    def produce_config_map_data(self) -> dict[str, str]:
        data_key = self.config_map_data_key()
        cert = self.vault.get_certificate(self.vault_ref, export_private_key=False)
        return {data_key: cert.export_certificate_pem().decode("ascii")}
