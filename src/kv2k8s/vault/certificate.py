# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/vault/certificate.py

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import pkcs12

_PRIVATE_KEY_RE = re.compile(
    r"-----BEGIN (?P<label>[A-Z ]*PRIVATE KEY)-----.+?-----END (?P=label)-----",
    re.DOTALL,
)


@dataclass(frozen=True)
class Certificate:
    """
    A certificate (plus optional chain and private key) as exported from
    Key Vault, able to render the PEM blobs Kubernetes TLS secrets expect.
    """

    certificate: x509.Certificate
    chain: tuple = ()
    private_key: Optional[object] = None

    @classmethod
    def from_der(cls, der: bytes) -> "Certificate":
        return cls(certificate=x509.load_der_x509_certificate(der))

    @classmethod
    def from_pkcs12(cls, data: bytes, password: Optional[bytes] = None) -> "Certificate":
        key, cert, extra = pkcs12.load_key_and_certificates(data, password)
        if cert is None:
            raise ValueError("PKCS#12 bundle contains no certificate")
        return cls(certificate=cert, chain=tuple(extra or ()), private_key=key)

    @classmethod
    def from_pem(cls, text: str) -> "Certificate":
        data = text.encode("utf-8")
        certs = x509.load_pem_x509_certificates(data)
        key = None
        m = _PRIVATE_KEY_RE.search(text)
        if m:
            key = serialization.load_pem_private_key(m.group(0).encode("utf-8"), password=None)
        return cls(certificate=certs[0], chain=tuple(certs[1:]), private_key=key)

    def export_certificate_pem(self) -> bytes:
        """Leaf certificate first, followed by any chain certificates."""
        return b"".join(
            c.public_bytes(serialization.Encoding.PEM)
            for c in (self.certificate, *self.chain)
        )

    def export_private_key_pem(self) -> bytes:
        if self.private_key is None:
            raise ValueError("certificate has no private key")
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
